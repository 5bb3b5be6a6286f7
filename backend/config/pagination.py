"""
Pagination for the API.

Timelines (messages, call logs) page by cursor over created_at. User-facing
lists use ?page/&limit with a pagination block; staff lists add the range
headers the admin panel reads.
"""
from rest_framework.pagination import CursorPagination, PageNumberPagination
from rest_framework.response import Response


class DefaultCursorPagination(CursorPagination):
    page_size = 50
    ordering = '-created_at'


class StandardPagination(PageNumberPagination):
    """?page=1&limit=20"""
    page_size = 20
    page_size_query_param = 'limit'
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response({
            'results': data,
            'pagination': {
                'page': self.page.number,
                'limit': self.get_page_size(self.request),
                'total': self.page.paginator.count,
                'pages': self.page.paginator.num_pages,
                'has_next': self.page.has_next(),
                'has_previous': self.page.has_previous(),
            },
        })


class AdminPagination(PageNumberPagination):
    """?page=1&page_size=25, with Content-Range / X-Total-Count headers"""
    page_size = 25
    page_size_query_param = 'page_size'
    max_page_size = 100

    def get_paginated_response(self, data):
        paginator = self.page.paginator
        size = self.get_page_size(self.request)
        first = (self.page.number - 1) * size
        last = first + max(len(data) - 1, 0)
        return Response(
            {
                'results': data,
                'count': paginator.count,
                'page': self.page.number,
                'page_size': size,
                'total_pages': paginator.num_pages,
            },
            headers={
                'Content-Range': f'items {first}-{last}/{paginator.count}',
                'X-Total-Count': str(paginator.count),
            },
        )
