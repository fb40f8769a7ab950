"""Errors raised by the salary engine."""


class InvalidInputError(ValueError):
    """
    Negative or inconsistent monetary input (ctc <= 0, fixed CTC < 0, ...).

    Subclasses ValueError so the global ValueError handler still maps it to 422
    if the dedicated handler is not registered.
    """
