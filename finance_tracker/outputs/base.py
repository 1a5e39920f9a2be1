# finance_tracker/outputs/base.py
import os
from abc import ABC, abstractmethod


class BaseOutput(ABC):
    extension = ''

    def __init__(self, config):
        self.config = config
        self.output_dir = config.get('output_dir', 'reports')
        os.makedirs(self.output_dir, exist_ok=True)

    def report_path(self, summary):
        return os.path.join(self.output_dir, f"BudgetReport-{summary.month}.{self.extension}")

    @abstractmethod
    def write(self, summary, trend):
        """Write a month's budget summary and six-month trend; return the path."""
        pass
