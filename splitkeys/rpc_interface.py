import functools
import logging

from jsonrpc.dispatcher import Dispatcher
from jsonrpc.exceptions import JSONRPCDispatchException

from . import threshold as threshold_scheme
from .exceptions import SplitKeysError

SERVER_ERROR_CODE = -32000


def create_dispatcher(registry: 'MinipoolRegistry', committee: 'Committee', threshold: int,
                      policy=threshold_scheme.select_first) -> Dispatcher:
    dispatcher = Dispatcher()

    dispatcher['echo'] = lambda value: value

    def dispatcher_add_method(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SplitKeysError as e:
                logging.info('{} failed: {}'.format(func.__name__, e))
                raise JSONRPCDispatchException(
                    code=SERVER_ERROR_CODE,
                    message=str(e),
                    data={'type': e.__class__.__name__},
                )
        return dispatcher.add_method(wrapper)

    @dispatcher_add_method
    def get_minipool_state(minipool_address: str) -> dict:
        return registry.get(minipool_address).to_state_message()

    @dispatcher_add_method
    def get_validator_pubkey(minipool_address: str) -> str:
        return registry.get(minipool_address).to_state_message()['validator_pubkey']

    @dispatcher_add_method
    def verify_key_shares(minipool_address: str) -> dict:
        verification = committee.verify_key_shares(minipool_address, registry, threshold, policy)
        msg = {'verdict': verification.verdict.value}
        if verification.mismatch is not None:
            msg['expected'] = verification.mismatch.expected
            msg['actual'] = verification.mismatch.actual
        return msg

    @dispatcher_add_method
    def stake(minipool_address: str) -> dict:
        return registry.stake(minipool_address).to_state_message()

    return dispatcher
