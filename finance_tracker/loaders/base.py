# finance_tracker/loaders/base.py
from abc import ABC, abstractmethod


class BaseLoader(ABC):
    @abstractmethod
    def load(self, file_path: str):
        """
        Yield transaction records (dicts with date, type, amount, category,
        note) read from file_path. Category is a name, resolved on import.
        """
        pass
