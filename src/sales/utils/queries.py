"""Helpers for walking repository contents page by page."""

PAGE_SIZE = 100


def iter_all(dao, page_size: int = PAGE_SIZE, **filters):
    """Yield every record matching ``filters``, fetching ``page_size`` at a time."""
    offset = 0
    while True:
        query = dao.query.filter(**filters) if filters else dao.query
        page = query.offset(offset).limit(page_size).all()
        yield from page.items
        if len(page.items) < page_size:
            return
        offset += page_size
