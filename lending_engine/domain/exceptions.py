"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ConfigurationError(DomainException):
    """Company or contract configuration is missing or unusable (modality, parameters, calendar)"""

    pass


class DataIntegrityError(DomainException):
    """Recorded movements contradict the contract (negative amounts, dated before origin)"""

    pass


class TransientError(DomainException):
    """Repository I/O failed; the next scheduled run retries"""

    pass


class ContractNotFoundError(DomainException):
    """Contract does not exist"""

    pass


class ModalityInUseError(DomainException):
    """Payment modality is referenced by a contract and cannot be edited"""

    pass
