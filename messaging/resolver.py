"""Resolve human-supplied destinations to group ids."""

import logging
from typing import List, Optional

from .exceptions import BackendSendFailedError, DestinationNotFoundError, TransportError
from .models import Group, is_group_id
from .supervisor import SessionSupervisor

logger = logging.getLogger(__name__)


class DestinationResolver:
    """Maps group ids or names to validated group ids.

    Groups are always fetched live from the session; membership can change
    on the backend at any time, so nothing is cached.
    """

    def __init__(self, supervisor: SessionSupervisor):
        self._supervisor = supervisor

    async def list_groups(self) -> List[Group]:
        """Fetch every group the session participates in.

        Raises:
            NotReadyError: If the session is not connected.
            BackendSendFailedError: If the backend query fails.
        """
        session = self._supervisor.session()
        try:
            return await session.list_groups()
        except TransportError as e:
            logger.error(f"Failed to list groups: {e}")
            raise BackendSendFailedError(str(e) or None) from e

    async def find_group_id(self, name: str) -> Optional[str]:
        """Return the id of the first group whose name matches, ignoring case."""
        wanted = name.lower()
        for group in await self.list_groups():
            if group.name.lower() == wanted:
                return group.id
        return None

    async def resolve(
        self,
        destination: Optional[str] = None,
        group_id: Optional[str] = None,
        group_name: Optional[str] = None,
    ) -> str:
        """Resolve a destination to a group id.

        A `destination` ending with the group suffix is taken as an id,
        anything else as a group name. Without a destination, an explicit
        `group_id` wins over `group_name`.

        Raises:
            DestinationNotFoundError: If no valid group id could be produced.
        """
        if destination:
            if is_group_id(destination):
                return destination
            group_name = destination
            group_id = None

        jid = group_id
        if not jid and group_name:
            jid = await self.find_group_id(group_name)

        if not is_group_id(jid):
            raise DestinationNotFoundError()
        return jid
