"""Errors raised by the queue engine.

Route handlers let `InvalidRequestError` propagate; the application maps it
to a 400 response. Idempotent situations (duplicate join, leave of an absent
participant, unknown establishment) are not errors and never raise.
"""


class QueueError(Exception):
    """Base class for queue engine errors."""


class InvalidRequestError(QueueError):
    """A request is missing an identifier or carries an unusable value."""


class InvalidPartySizeError(InvalidRequestError):
    """Party size outside the accepted range."""

    def __init__(self, party_size, max_party_size: int):
        self.party_size = party_size
        self.max_party_size = max_party_size
        super().__init__(f"party_size must be between 1 and {max_party_size} (got {party_size!r})")


class DuplicateParticipantError(QueueError):
    """An append would place a participant in the same queue twice."""

    def __init__(self, establishment_id: str, participant_id: str):
        self.establishment_id = establishment_id
        self.participant_id = participant_id
        super().__init__(f"participant {participant_id!r} already queued at {establishment_id!r}")
