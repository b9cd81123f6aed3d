"""
Pagination helpers for list endpoints.

Query parameters:
    page: Page number, 1-based (default: 1)
    per_page: Items per page (default: DEFAULT_PAGE_SIZE, max: MAX_PAGE_SIZE)
"""

from typing import NamedTuple

from flask import current_app, request

from asset_library.errors import ValidationError


class Page(NamedTuple):
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def to_dict(self, total: int) -> dict:
        return {
            'page': self.page,
            'per_page': self.per_page,
            'total': total,
            'pages': (total + self.per_page - 1) // self.per_page if self.per_page else 0,
        }


def get_page() -> Page:
    """
    Read page/per_page from the query string.

    Raises:
        ValidationError: page < 1 or per_page outside 1..MAX_PAGE_SIZE
    """
    default_size = current_app.config.get('DEFAULT_PAGE_SIZE', 50)
    max_size = current_app.config.get('MAX_PAGE_SIZE', 200)

    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', default_size, type=int)

    if page < 1:
        raise ValidationError('page must be 1 or greater')
    if per_page < 1 or per_page > max_size:
        raise ValidationError(f'per_page must be between 1 and {max_size}')

    return Page(page=page, per_page=per_page)
