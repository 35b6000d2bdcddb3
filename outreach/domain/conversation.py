"""
Conversation State - Per-Contact Interest Memory
=================================================

A contact starts UNSET. The first classified reply resolves it to POSITIVE
or NEGATIVE, and a resolved contact never goes back.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict


class ConversationState(Enum):
    UNSET = "unset"
    POSITIVE = "positive"
    NEGATIVE = "negative"

    @property
    def is_resolved(self) -> bool:
        return self is not ConversationState.UNSET


class ConversationStore(ABC):
    """
    Interface for conversation state storage.
    Implement this to keep states somewhere other than process memory.
    """

    @abstractmethod
    def get(self, contact_id: str) -> ConversationState:
        """Current state of a contact (UNSET if never seen)."""
        ...

    @abstractmethod
    def resolve(self, contact_id: str, state: ConversationState) -> bool:
        """
        Move an UNSET contact to `state`.
        Returns False (and changes nothing) if the contact is already resolved.
        """
        ...

    @abstractmethod
    def counts(self) -> Dict[str, int]:
        """Number of contacts per resolved state."""
        ...


class InMemoryConversationStore(ConversationStore):
    """Process-lifetime store. States are lost on restart."""

    def __init__(self):
        self._states: Dict[str, ConversationState] = {}

    def get(self, contact_id: str) -> ConversationState:
        return self._states.get(contact_id, ConversationState.UNSET)

    def resolve(self, contact_id: str, state: ConversationState) -> bool:
        if not state.is_resolved:
            raise ValueError("Cannot resolve a contact to UNSET")
        if self.get(contact_id).is_resolved:
            return False
        self._states[contact_id] = state
        return True

    def counts(self) -> Dict[str, int]:
        result = {ConversationState.POSITIVE.value: 0, ConversationState.NEGATIVE.value: 0}
        for state in self._states.values():
            result[state.value] += 1
        return result
