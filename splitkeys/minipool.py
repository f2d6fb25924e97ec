import collections
import contextlib
import enum
import logging
import threading

from py_ecc.optimized_bls12_381 import G1, multiply
from sqlalchemy import types
from sqlalchemy.orm import validates
from sqlalchemy.schema import Column

from . import db, util
from .exceptions import InvalidTransition, KeyMismatch, MinipoolExists, UnknownMinipool


@enum.unique
class MinipoolStatus(enum.IntEnum):
    initialized = 0
    prelaunch = 1
    staking = 2


@enum.unique
class Verdict(enum.Enum):
    accepted = 'accepted'
    rejected = 'rejected'


Verification = collections.namedtuple('Verification', ('verdict', 'mismatch'))


class Minipool(db.Base):
    address = Column(types.String(66), index=True, unique=True, nullable=False)
    validator_pubkey = Column(db.CurvePoint, nullable=False)
    status = Column(types.Enum(MinipoolStatus), nullable=False, default=MinipoolStatus.initialized)

    @validates('validator_pubkey')
    def validate_validator_pubkey(self, key, value):
        if self.validator_pubkey is not None:
            raise ValueError('validator public key of minipool {} is immutable'.format(self.address))
        return value

    @validates('status')
    def validate_status(self, key, value):
        if self.status is not None and value < self.status:
            raise ValueError('minipool {} status cannot revert from {} to {}'
                             .format(self.address, self.status.name, value.name))
        return value

    def to_state_message(self) -> dict:
        return {
            'address': self.address,
            'validator_pubkey': util.curve_point_to_hex(self.validator_pubkey),
            'status': self.status.name,
        }


class MinipoolRegistry:
    """Record of deployed minipool contracts and their lifecycle.

    Every read-check-write on a minipool happens under that minipool's lock,
    so a status change is visible to any caller that reads after it.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._db_lock = threading.RLock()
        self._locks = {}
        self._locks_lock = threading.Lock()

    def _lock_for(self, address: str) -> threading.Lock:
        with self._locks_lock:
            if address not in self._locks:
                self._locks[address] = threading.Lock()
            return self._locks[address]

    @contextlib.contextmanager
    def _session(self):
        with self._db_lock:
            session = self.session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    @staticmethod
    def _get(session, address: str) -> Minipool:
        minipool = (
            session
            .query(Minipool)
            .filter(Minipool.address == address)
            .scalar()
        )

        if minipool is None:
            raise UnknownMinipool(address)

        return minipool

    def deploy(self, address: str, validator_pubkey) -> Minipool:
        with self._lock_for(address), self._session() as session:
            if session.query(Minipool.id).filter(Minipool.address == address).scalar() is not None:
                raise MinipoolExists(address)

            minipool = Minipool(address=address, validator_pubkey=validator_pubkey,
                                status=MinipoolStatus.initialized)
            session.add(minipool)

        logging.info('deployed minipool {} with validator pubkey {}'
                     .format(address, util.curve_point_to_hex(validator_pubkey)))
        return minipool

    def get(self, address: str) -> Minipool:
        with self._lock_for(address), self._session() as session:
            return self._get(session, address)

    def get_status(self, address: str) -> MinipoolStatus:
        return self.get(address).status

    def addresses(self) -> list:
        with self._session() as session:
            return [address for (address,) in session.query(Minipool.address).order_by(Minipool.id)]

    def _transition(self, minipool: Minipool, source: MinipoolStatus, target: MinipoolStatus):
        if minipool.status != source:
            raise InvalidTransition(minipool.address, minipool.status, target)

        minipool.status = target
        logging.info('minipool {} moved from {} to {}'.format(minipool.address, source.name, target.name))

    def _accept_validator_key(self, minipool: Minipool):
        self._transition(minipool, MinipoolStatus.initialized, MinipoolStatus.prelaunch)

    def stake(self, address: str) -> Minipool:
        with self._lock_for(address), self._session() as session:
            minipool = self._get(session, address)
            self._transition(minipool, MinipoolStatus.prelaunch, MinipoolStatus.staking)
            return minipool

    def verify_validator_key(self, address: str, public_key) -> Verification:
        actual = util.curve_point_to_bytes(public_key)

        with self._lock_for(address), self._session() as session:
            minipool = self._get(session, address)
            expected = util.curve_point_to_bytes(minipool.validator_pubkey)

            if actual != expected:
                mismatch = KeyMismatch(address, expected.hex(), actual.hex())
                logging.warning(str(mismatch))
                return Verification(Verdict.rejected, mismatch)

            logging.info('successfully verified key shares for minipool {}'.format(address))
            if minipool.status == MinipoolStatus.initialized:
                self._accept_validator_key(minipool)
            else:
                logging.debug('minipool {} already {}; not transitioning'.format(address, minipool.status.name))

            return Verification(Verdict.accepted, None)


def deploy_minipool(registry: MinipoolRegistry, address: str, validator_secret_key: int = None, rng=None) -> int:
    """Create a validator key for a new minipool and record its public key.

    Returns the secret key, which the caller owns until it has been split.
    """
    if validator_secret_key is None:
        validator_secret_key = util.random_private_value(rng)
    else:
        util.validate_private_value(validator_secret_key)

    registry.deploy(address, multiply(G1, validator_secret_key))
    return validator_secret_key
