"""
Game Errors

Error taxonomy shared by the round engine. Only InvalidConfiguration escapes
to callers; the other errors are detected, logged and discarded where they
occur.
"""


class GameError(Exception):
    """Base class for all engine errors."""


class InvalidConfiguration(GameError, ValueError):
    """A mode table asks for more targets than the grid or pool can hold."""


class MissingAsset(GameError, KeyError):
    """A sound or image id is not part of the asset catalog."""

    def __str__(self):
        return Exception.__str__(self)


class DoubleResolution(GameError):
    """A round that is already resolved was resolved a second time."""

    def __init__(self, round_number: int, outcome: str):
        super().__init__(f"Round {round_number} already resolved, discarding '{outcome}'")
        self.round_number = round_number
        self.outcome = outcome


class StaleCallback(GameError):
    """A deferred callback fired after its round generation was superseded."""

    def __init__(self, generation: int, current: int):
        super().__init__(f"Callback from generation {generation} fired during generation {current}")
        self.generation = generation
        self.current = current
