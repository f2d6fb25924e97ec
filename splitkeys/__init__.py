from .exceptions import (
    DuplicateShare,
    InsufficientShares,
    InvalidParameters,
    InvalidTransition,
    KeyMismatch,
    MinipoolExists,
    SingularInterpolation,
    SplitKeysError,
    UnknownMinipool,
    UnknownRecipient,
)
from .threshold import reconstruct_public_key, reconstruct_secret, split
