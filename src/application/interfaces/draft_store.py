from abc import ABC, abstractmethod


class DraftStore(ABC):
    """Port for device-local key/value storage of unsaved drafts."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...
