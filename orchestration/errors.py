# orchestration/errors.py
"""Input errors raised before any generation work starts."""


class ActorMaterialsInputError(ValueError):
    """Base class for caller mistakes that abort a run immediately."""


class ArcNotFoundError(ActorMaterialsInputError):
    def __init__(self, arc_index: int, arc_count: int):
        self.arc_index = arc_index
        self.arc_count = arc_count
        super().__init__(
            f"Arc {arc_index} not found in story bible ({arc_count} arcs defined)"
        )


class CharacterNotFoundError(ActorMaterialsInputError):
    def __init__(self, requested: str):
        self.requested = requested
        super().__init__(f"Character not found: {requested}")
