"""Outcome values returned by the passwordless procedures.

Every procedure returns exactly one of:
- Proceed: hand the (possibly updated) context to the next stage.
- Redirect: send the client elsewhere. Any session write has already been
  awaited by the time a Redirect is returned.
- Reject: user input or authentication challenge (4xx). Never used for
  collaborator failures, which are raised as CollaboratorError instead.
"""

from dataclasses import dataclass

from passwordless.core.context import AuthContext


@dataclass(frozen=True)
class Proceed:
    context: AuthContext


@dataclass(frozen=True)
class Redirect:
    location: str


@dataclass(frozen=True)
class Reject:
    """A 4xx outcome.

    Attributes:
        status_code: 400 (bad request) or 401 (authentication challenge).
        challenge: WWW-Authenticate header value for 401 responses.
    """

    status_code: int
    challenge: str | None = None


Outcome = Proceed | Redirect | Reject
