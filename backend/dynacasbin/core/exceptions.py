class CasbinStoreError(Exception):
    pass


class TransientStoreError(CasbinStoreError):
    """A DynamoDB call failed for any reason other than a failed condition."""


class ConditionalCheckFailure(CasbinStoreError):
    """A conditional put found a record with the same id already stored."""


class CountMismatchError(CasbinStoreError):
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"unexpected number of batch writes; {actual} when expected {expected}"
        )


class RuleContractViolation(CasbinStoreError, ValueError):
    pass


class PolicyLoadError(CasbinStoreError):
    pass


class StoreUnavailableError(CasbinStoreError):
    pass
