"""
Collection Registry - the fixed, ordered set of collections that make up
an expenses-tracker snapshot.

Export, restore and purge all iterate this one tuple, in order.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .core.exceptions import UnknownCollectionError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionDescriptor:
    """
    Descriptor for one collection in the live store.

    Attributes:
        name: MongoDB collection name (also the snapshot file stem)
        model: Name of the application model stored in it (schema hint only)
        description: Human-readable description
        preserve_on_purge: Whether purge must leave this collection alone
    """
    name: str
    model: Optional[str] = None
    description: str = ""
    preserve_on_purge: bool = False

    @property
    def file_name(self) -> str:
        """Name of the snapshot file holding this collection."""
        return f"{self.name}.json"

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "model": self.model,
            "description": self.description,
            "preserve_on_purge": self.preserve_on_purge,
        }


# Restore order. No cross-collection integrity is enforced.
COLLECTIONS: Tuple[CollectionDescriptor, ...] = (
    CollectionDescriptor(
        "users", "User", "Login accounts and profile settings",
        preserve_on_purge=True,
    ),
    CollectionDescriptor("bankaccounts", "BankAccount", "Savings and current accounts"),
    CollectionDescriptor("creditcards", "CreditCard", "Credit cards and their limits"),
    CollectionDescriptor("loans", "Loan", "Loans and EMI schedules"),
    CollectionDescriptor("transactions", "Transaction", "Income, expense and transfer entries"),
    CollectionDescriptor("budgets", "Budget", "Monthly category budgets"),
    CollectionDescriptor("daybooks", "DayBook", "Daily cash book entries"),
    CollectionDescriptor("journals", "Journal", "Free-form journal entries"),
    CollectionDescriptor("stocks", "Stock", "Stock holdings"),
    CollectionDescriptor("sips", "SIP", "Systematic investment plans"),
)

_BY_NAME: Dict[str, CollectionDescriptor] = {c.name: c for c in COLLECTIONS}


def collection_names() -> List[str]:
    """Return the registered collection names in restore order."""
    return [c.name for c in COLLECTIONS]


def get_collection(name: str) -> CollectionDescriptor:
    """
    Look up a descriptor by collection name.

    Raises:
        UnknownCollectionError: If the name is not registered
    """
    try:
        return _BY_NAME[name]
    except KeyError:
        raise UnknownCollectionError(
            f"Unknown collection '{name}'. Known collections: {', '.join(collection_names())}"
        ) from None


def select_collections(names: Optional[Iterable[str]] = None) -> Tuple[CollectionDescriptor, ...]:
    """
    Select a subset of the registry, keeping registry order.

    Args:
        names: Collection names to keep; None or empty selects all

    Returns:
        Tuple of descriptors in registry order

    Raises:
        UnknownCollectionError: If any requested name is not registered
    """
    if not names:
        return COLLECTIONS

    wanted = set()
    for name in names:
        name = name.strip()
        if name:
            wanted.add(get_collection(name).name)

    selected = tuple(c for c in COLLECTIONS if c.name in wanted)
    logger.debug(f"Selected collections: {[c.name for c in selected]}")
    return selected


def purgeable_collections(
    collections: Iterable[CollectionDescriptor] = COLLECTIONS,
) -> Tuple[CollectionDescriptor, ...]:
    """Return the descriptors purge is allowed to truncate."""
    return tuple(c for c in collections if not c.preserve_on_purge)
