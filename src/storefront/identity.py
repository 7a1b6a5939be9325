"""Caller identity passed in by the authentication layer."""

from dataclasses import dataclass

DEFAULT_ROLE = "user"


@dataclass(frozen=True, slots=True)
class Identity:
    """An authenticated caller.

    Guests are represented by ``None`` wherever an ``Identity`` is optional.

    Attributes:
        user_id: Primary key of the authenticated user.
        role: Role name supplied by the authentication layer, e.g.
            ``"user"`` or ``"distributor"``.
    """

    user_id: int
    role: str = DEFAULT_ROLE

    @classmethod
    def from_user(cls, user: object, role: str | None = None) -> "Identity":
        """Build an identity from a user instance.

        Uses ``role`` when given, else a ``role`` attribute on the user,
        else :data:`DEFAULT_ROLE`.
        """
        return cls(user_id=user.pk, role=role or getattr(user, "role", "") or DEFAULT_ROLE)
