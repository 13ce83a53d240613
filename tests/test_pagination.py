import pytest

from social_feed.config import settings
from social_feed.errors import InvalidPagination
from social_feed.pagination import PageRequest, page_request


def test_defaults_come_from_settings():
    request = page_request()
    assert request == PageRequest(page=1, page_size=settings.default_page_size)


def test_offset_and_limit():
    request = page_request(3, 10)
    assert request.offset == 20
    assert request.limit == 10


def test_has_more_only_when_page_is_full():
    request = page_request(1, 10)
    assert request.has_more(10) is True
    assert request.has_more(9) is False
    assert request.has_more(0) is False


def test_max_page_size_is_accepted():
    assert page_request(1, settings.max_page_size).page_size == settings.max_page_size


@pytest.mark.parametrize(
    "page,page_size",
    [(0, 10), (-3, 10), (1, 0), (1, -1), (1, settings.max_page_size + 1)],
)
def test_out_of_range_values_rejected(page, page_size):
    with pytest.raises(InvalidPagination):
        page_request(page, page_size)
