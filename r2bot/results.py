from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from r2bot.logger import logger


class StepStatus(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAULT = "fault"


@dataclass(frozen=True)
class StepResult:
    """What one attempt of an operation body produced."""
    status: StepStatus
    message: Optional[str] = None

    @classmethod
    def success(cls, message: Optional[str] = None) -> "StepResult":
        return cls(StepStatus.SUCCESS, message)

    @classmethod
    def skipped(cls, reason: Optional[str] = None) -> "StepResult":
        return cls(StepStatus.SKIPPED, reason)

    @classmethod
    def fault(cls, message: str) -> "StepResult":
        return cls(StepStatus.FAULT, message)

    @property
    def is_fault(self) -> bool:
        return self.status is StepStatus.FAULT


@dataclass(frozen=True)
class OperationOutcome:
    success: bool
    error: Optional[str] = None


@dataclass
class ResultsTable:
    """Latest outcome per wallet and operation.

    Only the most recent loop iteration is kept: record() overwrites.
    """
    operation_names: List[str]
    entries: Dict[str, Dict[str, OperationOutcome]] = field(default_factory=dict)

    def record(self, address: str, operation: str, outcome: OperationOutcome):
        self.entries.setdefault(address, {})[operation] = outcome

    def get(self, address: str, operation: str) -> Optional[OperationOutcome]:
        return self.entries.get(address, {}).get(operation)

    def wallets(self) -> Iterable[str]:
        return list(self.entries)

    def summary_lines(self) -> List[str]:
        width = max((len(name) for name in self.operation_names), default=0) + 2
        lines = ["=== Operation Summary ==="]
        for address, results in self.entries.items():
            lines.append(f"Wallet: {address}")
            for name in self.operation_names:
                outcome = results.get(name)
                if outcome is None:
                    status = "⏭ Skipped"
                elif outcome.success:
                    status = "✅ Success"
                else:
                    status = "❌ Failed" + (f" ({outcome.error})" if outcome.error else "")
                lines.append(f"{name.ljust(width)}| {status}")
        return lines

    def summarize(self):
        for line in self.summary_lines():
            logger.info(line)
