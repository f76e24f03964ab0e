import pytest

from roster.state.pagination import PageDescriptor, page_window, record_range, total_pages_for


@pytest.mark.parametrize(
    "total, limit, expected",
    [(23, 10, 3), (20, 10, 2), (1, 10, 1), (0, 10, 0)],
)
def test_total_pages(total, limit, expected):
    assert total_pages_for(total, limit) == expected


def test_total_pages_requires_positive_limit():
    with pytest.raises(ValueError):
        total_pages_for(10, 0)


def test_record_range_for_first_and_last_page():
    assert record_range(1, 10, 23) == (1, 10)
    assert record_range(3, 10, 23) == (21, 23)
    assert record_range(4, 10, 23) is None
    assert record_range(1, 10, 0) is None


def test_page_window_collapses_distant_pages():
    assert page_window(5, 10) == [1, None, 3, 4, 5, 6, 7, None, 10]
    assert page_window(1, 10) == [1, 2, 3, None, 10]
    assert page_window(1, 1) == [1]
    assert page_window(1, 0) == []


def test_page_window_without_gaps_has_no_ellipsis():
    assert page_window(4, 6) == [1, 2, 3, 4, 5, 6]


def test_descriptor_from_payload_recomputes_total_pages():
    page = PageDescriptor.from_payload(
        {"total": 23, "page": 3, "limit": 10, "total_pages": 3.0},
        requested_page=3,
        requested_limit=10,
    )

    assert page.total_pages == 3
    assert isinstance(page.total_pages, int)
    assert page.visible_range() == (21, 23)
    assert page.has_previous
    assert not page.has_next
    assert page.offset == 20


def test_descriptor_uses_requested_values_when_missing():
    page = PageDescriptor.from_payload({}, requested_page=2, requested_limit=10)

    assert (page.page, page.limit, page.total, page.total_pages) == (2, 10, 0, 0)


def test_beyond_range_is_reported_not_clamped():
    page = PageDescriptor(page=3, limit=10, total=5, total_pages=1)

    assert page.is_beyond_range
    assert page.page == 3
    assert page.visible_range() is None
    assert not PageDescriptor(page=1, total=0, total_pages=0).is_beyond_range


def test_with_page_rejects_zero():
    with pytest.raises(ValueError):
        PageDescriptor().with_page(0)
