"""Pagination arithmetic shared by the list operations."""

# Largest page number accepted; keeps the row offset inside a signed 64-bit integer
MAX_PAGE = 2**31 - 1


def normalize_pagination(
    page: int,
    page_size: int,
    default_page_size: int = 10,
    max_page_size: int = 100,
) -> tuple[int, int, int]:
    """Clamp out-of-range values silently.

    Returns:
        tuple: (page, page_size, skip)
    """
    if page < 1:
        page = 1
    page = min(page, MAX_PAGE)
    if page_size < 1 or page_size > max_page_size:
        page_size = default_page_size
    skip = (page - 1) * page_size
    return page, page_size, skip


def count_pages(total: int, page_size: int) -> int:
    """Ceiling of total / page_size."""
    return (total + page_size - 1) // page_size
