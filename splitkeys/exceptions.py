class SplitKeysError(Exception):
    pass


class InvalidParameters(SplitKeysError, ValueError):
    pass


class UnknownRecipient(SplitKeysError, LookupError):
    def __init__(self, identity: int, minipool_address: str):
        super().__init__('no committee member with identity {} to receive share for minipool {}'
                         .format(identity, minipool_address))
        self.identity = identity
        self.minipool_address = minipool_address


class DuplicateShare(SplitKeysError):
    def __init__(self, identity: int, minipool_address: str):
        super().__init__('committee member {} already holds a share for minipool {}'
                         .format(identity, minipool_address))
        self.identity = identity
        self.minipool_address = minipool_address


class InsufficientShares(SplitKeysError):
    def __init__(self, num_shares: int, threshold: int):
        super().__init__('need at least {} shares but got {}'.format(threshold, num_shares))
        self.num_shares = num_shares
        self.threshold = threshold


class SingularInterpolation(SplitKeysError, ValueError):
    pass


class KeyMismatch(SplitKeysError):
    def __init__(self, minipool_address: str, expected: str, actual: str):
        super().__init__('unexpected validator public key for minipool {}. Recovered key: {}, Contract key: {}'
                         .format(minipool_address, actual, expected))
        self.minipool_address = minipool_address
        self.expected = expected
        self.actual = actual


class InvalidTransition(SplitKeysError):
    def __init__(self, minipool_address: str, current: 'MinipoolStatus', target: 'MinipoolStatus'):
        super().__init__('minipool {} cannot move from {} to {}'
                         .format(minipool_address, current.name, target.name))
        self.minipool_address = minipool_address
        self.current = current
        self.target = target


class UnknownMinipool(SplitKeysError, LookupError):
    def __init__(self, minipool_address: str):
        super().__init__('could not find minipool with address {}'.format(minipool_address))
        self.minipool_address = minipool_address


class MinipoolExists(SplitKeysError):
    def __init__(self, minipool_address: str):
        super().__init__('minipool with address {} already deployed'.format(minipool_address))
        self.minipool_address = minipool_address
