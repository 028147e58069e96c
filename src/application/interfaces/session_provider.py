from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    access_token: str
    user_id: str
    refresh_token: str | None = None


class SessionProvider(ABC):
    """Port for the auth collaborator that issues bearer credentials."""

    @abstractmethod
    async def get_current_session(self) -> Session | None:
        ...

    @abstractmethod
    async def refresh_session(self) -> Session | None:
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...
