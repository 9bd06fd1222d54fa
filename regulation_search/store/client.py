"""
Supabase client wrapper for the regulations table.

The store is read-only from this package's point of view: one bounded
select of the regulations table per load.
"""

import logging
import os
from typing import TYPE_CHECKING, List, Optional

from dotenv import load_dotenv
from supabase import Client, create_client

from regulation_search.config.config import MAX_STORE_LIMIT
from regulation_search.errors import StoreReadError
from regulation_search.models import Regulation, regulations_from_rows

if TYPE_CHECKING:
    from regulation_search.config import Config

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "regulations"


class RegulationStore:
    """Fetches regulation records from a Supabase table."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        table: Optional[str] = None,
        limit: Optional[int] = None,
        client: Optional[Client] = None,
        config: Optional['Config'] = None
    ):
        """
        Initialize the store client.

        Args:
            url: Supabase project URL (overrides config, defaults to SUPABASE_URL)
            key: Supabase API key (overrides config, defaults to SUPABASE_KEY)
            table: Table name (overrides config)
            limit: Maximum number of rows per read, capped at 100 (overrides config)
            client: Pre-built Supabase client (skips credential lookup)
            config: Optional Config instance

        Raises:
            ValueError: If no client is given and credentials are missing
        """
        store_config = config.store if config else {}

        self.table = table or store_config.get('table') or DEFAULT_TABLE
        limit = limit if limit is not None else store_config.get('limit', MAX_STORE_LIMIT)
        if limit > MAX_STORE_LIMIT:
            logger.warning(f"Store limit {limit} exceeds {MAX_STORE_LIMIT}, capping")
            limit = MAX_STORE_LIMIT
        if limit < 1:
            raise ValueError(f"Store limit must be positive, got {limit}")
        self.limit = limit

        if client is None:
            url = url or store_config.get('url') or os.getenv("SUPABASE_URL")
            key = key or store_config.get('key') or os.getenv("SUPABASE_KEY")
            if not url or not key:
                raise ValueError(
                    "Supabase credentials required. Set SUPABASE_URL and SUPABASE_KEY env vars "
                    "or store.url / store.key in config."
                )
            client = create_client(url, key)
            logger.info("Supabase client created")

        self.client = client

    def fetch_regulations(self) -> List[Regulation]:
        """
        Read up to `limit` regulation records.

        Returns:
            List of Regulation records in store order

        Raises:
            StoreReadError: If the request fails or returns unusable rows
        """
        try:
            response = (
                self.client.table(self.table)
                .select("*")
                .limit(self.limit)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch regulations from '{self.table}': {e}")
            raise StoreReadError(f"Failed to fetch regulations: {e}") from e

        rows = response.data
        if rows is None:
            rows = []
        if not isinstance(rows, list):
            raise StoreReadError(f"Unexpected response payload from '{self.table}': {type(rows)}")

        regulations = regulations_from_rows(rows[:self.limit])
        logger.info(f"Fetched {len(regulations)} regulations from '{self.table}'")
        return regulations
