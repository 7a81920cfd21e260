class StampSlotError(Exception):
    """Base class for stampslot errors."""


class ClassificationError(StampSlotError):
    """Raised when a classification source cannot be loaded or has no valid codes."""


class ConfigValidationError(StampSlotError):
    def __init__(self, errors):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class PersistenceError(StampSlotError):
    """Raised when the state store cannot write a save."""
