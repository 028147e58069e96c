from abc import ABC, abstractmethod


class Navigator(ABC):
    """Port for the routing layer."""

    @abstractmethod
    async def redirect_to_login(self, notice: str) -> None:
        ...
