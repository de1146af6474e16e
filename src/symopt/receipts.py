"""
Receipt Chain for Auditable Extrema Queries

Every solver event (arrangement selection, KKT branch, candidate
evaluation, classification) is recorded and hashed into a
tamper-evident chain. Inconclusive classifications and dropped
candidates are reported here rather than silently discarded.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List
from enum import Enum
from pathlib import Path

from .core.canonical_json import canonical_dumps, canonical_hash, to_jsonable

GENESIS = "genesis"


class ActionType(Enum):
    """Solver events that generate receipts."""
    INIT = "init"
    ARRANGEMENT_ACCEPT = "arrangement_accept"
    ARRANGEMENT_REJECT = "arrangement_reject"
    ORDER_RAISED = "order_raised"
    PATTERN_SOLVED = "pattern_solved"
    FAMILY_SAMPLED = "family_sampled"
    CANDIDATE_DROPPED = "candidate_dropped"
    CANDIDATE_EVALUATED = "candidate_evaluated"
    INCUMBENT_UPDATE = "incumbent_update"
    CLASSIFIED = "classified"
    INCONCLUSIVE = "inconclusive"
    SPHERE_EMPTY = "sphere_empty"
    TERMINATE = "terminate"


@dataclass
class Receipt:
    """
    One solver event, linked to its predecessor by ``prev_hash``.

    ``data_hash`` covers the expressions the event consumed and produced;
    ``params`` holds the printable summary.
    """
    sequence: int
    action: ActionType
    params: Dict[str, Any]
    data_hash: str
    prev_hash: str
    receipt_hash: str = ""

    def __post_init__(self):
        self.params = to_jsonable(self.params)
        if not self.receipt_hash:
            self.receipt_hash = canonical_hash(self.body())

    def body(self) -> Dict[str, Any]:
        return {
            "sequence": self.sequence,
            "action": self.action.value,
            "params": self.params,
            "data_hash": self.data_hash,
            "prev_hash": self.prev_hash
        }

    def verify(self) -> bool:
        return self.receipt_hash == canonical_hash(self.body())

    def to_canonical(self) -> Dict[str, Any]:
        return dict(self.body(), receipt_hash=self.receipt_hash)


class ReceiptChain:
    """Hash-linked audit trail of one query."""

    def __init__(self):
        self.receipts: List[Receipt] = []

    @property
    def final_hash(self) -> str:
        return self.receipts[-1].receipt_hash if self.receipts else GENESIS

    def add_receipt(
        self,
        action: ActionType,
        params: Dict[str, Any],
        input_data: Any = None,
        output_data: Any = None
    ) -> Receipt:
        """
        Record an event.

        Args:
            action: The action type
            params: Event parameters (SymPy values are printed)
            input_data: Data the event consumed
            output_data: Data the event produced

        Returns:
            The created receipt
        """
        receipt = Receipt(
            sequence=len(self.receipts),
            action=action,
            params=params,
            data_hash=canonical_hash([input_data, output_data]),
            prev_hash=self.final_hash
        )
        self.receipts.append(receipt)
        return receipt

    def of_type(self, action: ActionType) -> List[Receipt]:
        return [r for r in self.receipts if r.action == action]

    def verify_chain(self) -> bool:
        """True if every receipt hash and every prev_hash link holds."""
        prev_hash = GENESIS
        for receipt in self.receipts:
            if not receipt.verify() or receipt.prev_hash != prev_hash:
                return False
            prev_hash = receipt.receipt_hash
        return True

    def save_json(self, path: Path) -> None:
        data = {
            "receipts": [r.to_canonical() for r in self.receipts],
            "final_hash": self.final_hash
        }
        with open(path, 'w') as f:
            f.write(canonical_dumps(data, indent=2))

    @classmethod
    def load_json(cls, path: Path) -> 'ReceiptChain':
        with open(path, 'r') as f:
            data = json.load(f)

        chain = cls()
        for r_data in data["receipts"]:
            chain.receipts.append(
                Receipt(**dict(r_data, action=ActionType(r_data["action"])))
            )
        return chain
