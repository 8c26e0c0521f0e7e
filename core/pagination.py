"""
Pagination Engine.

Runs a pipeline, slices the result into one page and computes the page
metadata. The generic `items` / `totalCount` keys are renamed per resource
type from the declarative `RESULT_LABELS` table; the renaming is cosmetic and
never changes what is counted or returned.
"""

import math
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core.logging_config import get_logger
from core.pipeline import Pipeline, execute
from core.store import Document, EntityStore
from core.validation import coerce_positive_int

logger = get_logger(__name__)

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))


@dataclass(frozen=True)
class ResultLabels:
    items: str = "items"
    total: str = "totalCount"


RESULT_LABELS: Dict[str, ResultLabels] = {
    "comments": ResultLabels("comments", "totalComments"),
    "videos": ResultLabels("videos", "totalVideos"),
    "subscribers": ResultLabels("subscribers", "totalSubscribers"),
    "channels": ResultLabels("channels", "totalChannels"),
    "likedVideos": ResultLabels("likedVideos", "totalLikedVideos"),
    "playlists": ResultLabels("playlists", "totalPlaylists"),
    "tweets": ResultLabels("tweets", "totalTweets"),
}


def labels_for(resource: Optional[str]) -> ResultLabels:
    if resource is None:
        return ResultLabels()
    return RESULT_LABELS[resource]


def normalize_page_options(page: Any, page_size: Any) -> Dict[str, int]:
    """Coerce caller-supplied page and page size, applying defaults and the cap"""
    return {
        "page": coerce_positive_int(page, DEFAULT_PAGE),
        "page_size": min(coerce_positive_int(page_size, DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE),
    }


def build_page(
    documents: List[Document],
    page: Any = DEFAULT_PAGE,
    page_size: Any = DEFAULT_PAGE_SIZE,
    labels: Optional[ResultLabels] = None,
) -> Dict[str, Any]:
    """Slice a fully evaluated result set into a page envelope"""
    labels = labels or ResultLabels()
    options = normalize_page_options(page, page_size)
    page, page_size = options["page"], options["page_size"]

    total_count = len(documents)
    total_pages = math.ceil(total_count / page_size) if total_count else 0
    offset = (page - 1) * page_size
    items = documents[offset : offset + page_size]

    has_next = page < total_pages
    # An empty result has no neighbouring pages in either direction
    has_prev = page > 1 and total_count > 0

    return {
        labels.items: items,
        labels.total: total_count,
        "page": page,
        "pageSize": page_size,
        "totalPages": total_pages,
        "hasNext": has_next,
        "hasPrev": has_prev,
        "nextPage": page + 1 if has_next else None,
        "prevPage": page - 1 if has_prev else None,
    }


async def paginate(
    store: EntityStore,
    pipeline: Pipeline,
    page: Any = DEFAULT_PAGE,
    page_size: Any = DEFAULT_PAGE_SIZE,
    labels: Optional[ResultLabels] = None,
) -> Dict[str, Any]:
    """Execute the pipeline and return one page of its results"""
    documents = await execute(store, pipeline)
    result = build_page(documents, page, page_size, labels)
    logger.debug(
        f"Paginated {pipeline.collection}",
        extra={
            "collection": pipeline.collection,
            "page": result["page"],
            "page_size": result["pageSize"],
            "total_pages": result["totalPages"],
        },
    )
    return result
