import asyncio
import logging
import threading

from . import threshold as threshold_scheme
from . import util
from .exceptions import DuplicateShare, UnknownRecipient


class CommitteeMember:
    def __init__(self, identity: int):
        util.validate_identity(identity)
        self.identity = identity
        # minipool address -> key share; only this member touches it
        self._key_shares = {}
        self._lock = threading.Lock()

    def set_key_share(self, minipool_address: str, share: int):
        util.validate_private_value(share)
        with self._lock:
            if minipool_address in self._key_shares:
                raise DuplicateShare(self.identity, minipool_address)
            self._key_shares[minipool_address] = share

    def get_key_share(self, minipool_address: str) -> int:
        with self._lock:
            return self._key_shares.get(minipool_address)

    def has_key_share(self, minipool_address: str) -> bool:
        with self._lock:
            return minipool_address in self._key_shares

    def __repr__(self):
        return '<{}.{} identity={}>'.format(__name__, self.__class__.__name__, self.identity)


class Committee:
    def __init__(self, identities: tuple):
        identities = tuple(identities)
        util.validate_identities(identities)
        self.members = {identity: CommitteeMember(identity) for identity in identities}

    @classmethod
    def with_size(cls, num_members: int) -> 'Committee':
        return cls(range(1, num_members + 1))

    @property
    def identities(self) -> tuple:
        return tuple(self.members)

    def __len__(self):
        return len(self.members)

    def deliver_key_share(self, minipool_address: str, identity: int, share: int):
        member = self.members.get(identity)
        if member is None:
            raise UnknownRecipient(identity, minipool_address)

        logging.debug('sending minipool {} share to committee member {}'.format(minipool_address, identity))
        member.set_key_share(minipool_address, share)

    async def distribute_key_shares(self, minipool_address: str, shares: dict, *,
                                    loop: asyncio.AbstractEventLoop = None) -> dict:
        """Deliver each share to its member concurrently.

        Returns a mapping of identity to the exception raised for every
        delivery that failed; successful deliveries are not affected by
        failed ones.
        """
        if loop is None:
            loop = asyncio.get_running_loop()

        identities = tuple(shares)
        results = await asyncio.gather(
            *(loop.run_in_executor(None, self.deliver_key_share, minipool_address, identity, shares[identity])
              for identity in identities),
            return_exceptions=True
        )

        failures = {}
        for identity, result in zip(identities, results):
            if isinstance(result, Exception):
                logging.warning('could not deliver minipool {} share to member {}: {}'
                                .format(minipool_address, identity, result))
                failures[identity] = result

        missing = sorted(set(self.members).difference(identities))
        if missing:
            logging.warning('no shares for minipool {} addressed to members {}'.format(minipool_address, missing))

        logging.info('delivered {} of {} shares for minipool {}'
                     .format(len(identities) - len(failures), len(identities), minipool_address))
        return failures

    def gather_key_shares(self, minipool_address: str, threshold: int,
                          policy=threshold_scheme.select_first) -> dict:
        available = {}
        for identity, member in self.members.items():
            share = member.get_key_share(minipool_address)
            if share is not None:
                available[identity] = share

        selected = policy(available, threshold)
        logging.info('using key shares of committee members {} for minipool {}'
                     .format(sorted(selected), minipool_address))
        return selected

    def verify_key_shares(self, minipool_address: str, registry: 'MinipoolRegistry', threshold: int,
                          policy=threshold_scheme.select_first) -> 'Verification':
        logging.info('will try to recover validator key of minipool {} using {} shares...'
                     .format(minipool_address, threshold))
        shares = self.gather_key_shares(minipool_address, threshold, policy)
        aggregate_pubkey = threshold_scheme.reconstruct_public_key(shares, threshold)
        return registry.verify_validator_key(minipool_address, aggregate_pubkey)
