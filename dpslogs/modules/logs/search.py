"""
Filtered log search.

Purpose
-------
Answer paginated search requests:

1. Resolve the filter's API key to a creator (unknown key -> NotFoundError)
2. Build the query plan and hash it
3. Read grouped id rows from `filteredLogs:{hash}`, or execute the plan and
   populate that entry (best-effort)
4. Slice the requested page and batch-fetch its documents

The full grouped id list is cached, not the page, so every page of one
filter shares a single cache entry.

Failure Semantics
-----------------
`NotFoundError` and `InvalidInputError` reach the caller unchanged. Anything
else is logged with its traceback and re-raised as `SearchFailedError`.
"""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Optional, Union

from dpslogs.core.logging.logger import get_logger
from dpslogs.core.redis.service import CacheClient
from dpslogs.modules.logs.constants import CACHE_TTL_SECONDS, DEFAULT_PAGE_SIZE
from dpslogs.modules.logs.plan import QueryPlan, build_plan
from dpslogs.modules.logs.repository import LogStore
from dpslogs.modules.logs.schemas import GroupRow, LogFilter, SearchResult
from dpslogs.modules.shared.base_service import BaseService
from dpslogs.modules.shared.exceptions import (
    InvalidInputError,
    NotFoundError,
    SearchFailedError,
)
from dpslogs.modules.users.repository import UserResolver

logger = get_logger(__name__)


class FilteredLogSearch(BaseService):
    def __init__(self, store: LogStore, cache: CacheClient, users: UserResolver) -> None:
        super().__init__(logger)
        self.store = store
        self.cache = cache
        self.users = users

    async def resolve_creator(self, log_filter: LogFilter) -> Optional[str]:
        """Creator id for the filter's API key; None when no key was given."""
        if log_filter.key is None:
            return None

        user = await self.users.find_by_api_key(log_filter.key)
        if user is None:
            raise NotFoundError("User")
        return user.id

    async def plan_for(self, log_filter: LogFilter) -> QueryPlan:
        return build_plan(log_filter, await self.resolve_creator(log_filter))

    async def _matching_rows(self, plan: QueryPlan) -> List[GroupRow]:
        key = plan.cache_key()

        cached = await self.cache.get(key)
        if cached is not None:
            self.log.debug("Filtered logs cache hit", extra={"key": key})
            return [GroupRow.from_dict(item) for item in json.loads(cached)]

        rows = await self.store.aggregate(plan)
        await self.populate_cache(
            self.cache,
            key,
            json.dumps([row.to_dict() for row in rows]),
            CACHE_TTL_SECONDS,
        )
        return rows

    async def search(
        self,
        log_filter: Union[LogFilter, Mapping[str, Any], None] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> SearchResult:
        """
        Run a filtered search and return one page of logs.

        Args:
            log_filter: Filter model or raw filter mapping
            page_size: Logs per page (>= 1)

        Raises:
            InvalidInputError: Malformed filter or page size
            NotFoundError: API key given but unknown
            SearchFailedError: Any other failure
        """
        if page_size < 1:
            raise InvalidInputError("page_size", "must be at least 1")

        try:
            parsed = LogFilter.parse(log_filter)
            plan = await self.plan_for(parsed)
            rows = await self._matching_rows(plan)

            total_found = len(rows)
            total_pages = SearchResult.page_count(total_found, page_size)
            page = max(parsed.page, 0)

            window = rows[page * page_size : (page + 1) * page_size]
            if not window:
                return SearchResult.empty()

            ids = [row.id for row in window]
            fetched = {log.id: log for log in await self.store.fetch_many(ids)}
            logs = [fetched[i] for i in ids if i in fetched]

            self.log.debug(
                "Filtered search complete",
                extra={
                    "plan_hash": plan.hash(),
                    "found": total_found,
                    "page": page,
                    "returned": len(logs),
                },
            )
            return SearchResult(
                total_found=total_found,
                page=page,
                total_pages=total_pages,
                logs=logs,
            )

        except (NotFoundError, InvalidInputError):
            raise
        except Exception as exc:
            self.log_error("get_filtered_logs", exc)
            raise SearchFailedError() from exc
