from __future__ import annotations

from typing import NewType
from uuid import UUID

RequestId = NewType("RequestId", UUID)
UserId = NewType("UserId", UUID)
PaymentId = NewType("PaymentId", UUID)
PayoutId = NewType("PayoutId", UUID)
BankAccountId = NewType("BankAccountId", UUID)
GoalId = NewType("GoalId", UUID)
