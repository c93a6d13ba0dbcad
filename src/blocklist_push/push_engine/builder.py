"""Builds the configuration fragment shared by every device session."""
import logging
from typing import Iterable, Optional, Union

from ..schema import AddressEntry, ConfigurationFragment, InvalidConfiguration

logger = logging.getLogger(__name__)


class AddressListBuilder:
    """Turn validated addresses and a list name into a ConfigurationFragment."""

    def build(
        self,
        list_name: str,
        entries: Iterable[Union[AddressEntry, str]],
        comment: Optional[str] = None,
    ) -> ConfigurationFragment:
        """
        Build the fragment for one run.

        Entries keep their input order; nothing is sorted or deduplicated.

        Args:
            list_name: Name of the block-list to extend on each device
            entries: AddressEntry values, or strings to be parsed into them
            comment: Commit comment (optional)

        Returns:
            ConfigurationFragment

        Raises:
            InvalidConfiguration: If list_name is empty
            ValueError: If a string entry is not valid IPv4
        """
        if not list_name or not list_name.strip():
            raise InvalidConfiguration("List name must not be empty")

        normalized = []
        for entry in entries:
            if not isinstance(entry, AddressEntry):
                entry = AddressEntry.parse(entry)
            normalized.append(entry)

        fragment = ConfigurationFragment(
            list_name=list_name.strip(),
            entries=tuple(normalized),
            comment=comment or "",
        )
        logger.debug(
            f"Built fragment for list '{fragment.list_name}' with {len(fragment)} entries"
        )
        return fragment
