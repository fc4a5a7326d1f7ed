"""Orphan handling policies for hierarchylib.

An orphan is a row that refresh cannot reach from the sentinel root: its
parent id does not exist, or it sits on a parent cycle. Orphans never get
nested-set values. A policy decides what else happens when refresh finds
them, before anything is written.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from .errors import StructureError

logger = logging.getLogger(__name__)


class OrphanPolicy(ABC):
    """
    Base class for orphan handling policies.

    Subclasses implement different strategies for rows that the
    numbering walk could not reach.
    """

    @abstractmethod
    def handle(self, table: str, orphans: Sequence[Any]) -> None:
        """
        Handle the orphans found by one refresh.

        Called once per refresh, only when ``orphans`` is non-empty.

        Args:
            table: Name of the hierarchy table being refreshed
            orphans: Unreachable ids, in ascending order

        Raises:
            StructureError: To abort the refresh before any write
        """
        pass


class IgnoreOrphansPolicy(OrphanPolicy):
    """
    Policy that skips orphans silently.

    This is the default: orphans keep whatever level/lft/rgt they had,
    and the rest of the table is numbered normally.
    """

    def handle(self, table: str, orphans: Sequence[Any]) -> None:
        """Do nothing."""
        pass


class CollectOrphansPolicy(OrphanPolicy):
    """
    Policy that records orphans and continues.

    Every refresh that finds orphans adds one record, so the caller can
    inspect or repair them afterwards.
    """

    def __init__(self, verbose: bool = True):
        """
        Initialize the policy.

        Args:
            verbose: If True, log a warning each time orphans are found
        """
        self.records: List[Dict[str, Any]] = []
        self.verbose = verbose

    @property
    def orphans(self) -> List[Any]:
        """All orphan ids recorded so far, oldest refresh first."""
        return [orphan for record in self.records for orphan in record['orphans']]

    def handle(self, table: str, orphans: Sequence[Any]) -> None:
        """Record the orphans."""
        self.records.append({
            'table': table,
            'orphans': tuple(orphans),
            'count': len(orphans),
        })
        if self.verbose:
            logger.warning("%d unreachable row(s) skipped in %r: %s",
                           len(orphans), table, list(orphans)[:10])

    def get_statistics(self) -> dict:
        """
        Get statistics about orphans encountered.

        Returns:
            Dictionary with refresh and orphan counts
        """
        return {
            'refreshes_with_orphans': len(self.records),
            'total_orphans': sum(record['count'] for record in self.records),
            'records': self.records,
        }

    def clear(self) -> None:
        """Forget everything recorded so far."""
        self.records = []


class FailOnOrphansPolicy(OrphanPolicy):
    """
    Policy that aborts the refresh when any row is unreachable.

    Useful when the adjacency data must be a complete tree and partial
    numbering is not acceptable.
    """

    def handle(self, table: str, orphans: Sequence[Any]) -> None:
        """Raise StructureError."""
        raise StructureError(orphans)
