"""Recipient resolution: map an event's strategy to concrete user IDs."""

from typing import Iterable, List, Optional, Protocol

from notifier.domain.models import NotificationEvent, RecipientStrategy
from notifier.logging import get_logger

from .exceptions import ResolutionError

logger = get_logger(__name__, component="resolver")


class MembershipDirectory(Protocol):
    """Firm, case and assignment membership, owned by the host application."""

    def active_team_members(self, firm_id: str) -> List[str]:
        """IDs of the firm's active team members (inactive members excluded)."""
        ...

    def case_participants(self, case_id: str) -> List[str]:
        """IDs of every user participating in the case."""
        ...

    def assignees(self, reference_id: str) -> List[str]:
        """IDs of the current assignee(s) of the referenced entity."""
        ...


def _unique(ids: Iterable[Optional[str]]) -> List[str]:
    seen = set()
    result = []
    for user_id in ids:
        if not user_id:
            continue
        user_id = str(user_id).strip()
        if user_id and user_id not in seen:
            seen.add(user_id)
            result.append(user_id)
    return result


class RecipientResolver:
    """Resolve a NotificationEvent to an ordered, de-duplicated list of user IDs."""

    def __init__(self, directory: MembershipDirectory, exclude_actor_from_case_members: bool = True):
        self.directory = directory
        self.exclude_actor_from_case_members = exclude_actor_from_case_members

    def resolve(self, event: NotificationEvent) -> List[str]:
        """
        Resolve the recipients of ``event``.

        Args:
            event: Event to resolve

        Returns:
            Recipient user IDs in resolution order, without duplicates.
            May be empty (e.g. a case whose only participant is the actor).

        Raises:
            ResolutionError: If the strategy's required inputs are missing or
                the membership directory fails
        """
        try:
            strategy = RecipientStrategy(event.recipient_strategy)
        except ValueError as e:
            raise ResolutionError(
                f"Unknown recipient strategy: {event.recipient_strategy}",
                strategy=str(event.recipient_strategy),
            ) from e

        if strategy in (RecipientStrategy.SINGLE, RecipientStrategy.CUSTOM):
            recipients = _unique(event.recipient_ids or [])
            if not recipients:
                raise ResolutionError(
                    f"Strategy '{strategy.value}' requires at least one recipient ID",
                    strategy=strategy.value,
                )
            if strategy == RecipientStrategy.SINGLE and len(recipients) != 1:
                raise ResolutionError(
                    f"Strategy 'single' requires exactly one recipient ID, got {len(recipients)}",
                    strategy=strategy.value,
                )
            return recipients

        if strategy == RecipientStrategy.TEAM:
            if not event.firm_id:
                raise ResolutionError("Strategy 'team' requires firm_id", strategy=strategy.value)
            return self._lookup(strategy, self.directory.active_team_members, event.firm_id)

        if strategy == RecipientStrategy.CASE_MEMBERS:
            if not event.case_id:
                raise ResolutionError(
                    "Strategy 'case_members' requires case_id", strategy=strategy.value
                )
            members = self._lookup(strategy, self.directory.case_participants, event.case_id)
            if self.exclude_actor_from_case_members and event.actor_id:
                members = [m for m in members if m != event.actor_id]
            return members

        # assigned_users: explicit IDs win over the directory lookup
        explicit = _unique(event.recipient_ids or [])
        if explicit:
            return explicit
        if not event.reference_id:
            raise ResolutionError(
                "Strategy 'assigned_users' requires recipient_ids or reference_id",
                strategy=strategy.value,
            )
        return self._lookup(strategy, self.directory.assignees, event.reference_id)

    def _lookup(self, strategy: RecipientStrategy, lookup, key: str) -> List[str]:
        try:
            return _unique(lookup(key) or [])
        except Exception as e:
            logger.error(
                f"Membership lookup failed for {strategy.value} {key}: {e}",
                extra={
                    "event": "resolver.lookup.failed",
                    "strategy": strategy.value,
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            raise ResolutionError(
                f"Membership lookup failed for strategy '{strategy.value}': {e}",
                strategy=strategy.value,
            ) from e
