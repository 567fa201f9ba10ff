from homesocial.services.feed_service import filter_listings, select_hero

ROWS = [
    {"title": "Lake House", "city": "Tahoe City", "state": "CA", "zip": "96145"},
    {"title": "Downtown Loft", "city": "Austin", "state": "TX", "zip": "78701"},
    {"title": "Farmhouse", "city": None, "state": None, "zip": None},
]


def url_for(media):
    return f"https://cdn.test/{media['storage_path']}"


def test_blank_query_keeps_everything():
    assert filter_listings(ROWS, None) == ROWS
    assert filter_listings(ROWS, "   ") == ROWS


def test_filter_is_case_insensitive_substring():
    assert [row["title"] for row in filter_listings(ROWS, "tahoe")] == ["Lake House"]
    assert [row["title"] for row in filter_listings(ROWS, "LOFT")] == ["Downtown Loft"]


def test_filter_matches_state_and_zip():
    assert [row["title"] for row in filter_listings(ROWS, "tx")] == ["Downtown Loft"]
    assert [row["title"] for row in filter_listings(ROWS, "9614")] == ["Lake House"]


def test_filter_skips_missing_fields():
    assert [row["title"] for row in filter_listings(ROWS, "farm")] == ["Farmhouse"]
    assert filter_listings(ROWS, "seattle") == []


def test_hero_prefers_first_video():
    media = [
        {"type": "photo", "sort_order": 0, "storage_path": "a.jpg"},
        {"type": "video", "sort_order": 2, "storage_path": "b.mp4"},
        {"type": "video", "sort_order": 1, "storage_path": "c.mp4"},
    ]

    assert select_hero(media, url_for) == {"type": "video", "url": "https://cdn.test/c.mp4"}


def test_hero_falls_back_to_first_photo():
    media = [
        {"type": "photo", "sort_order": 3, "storage_path": "late.jpg"},
        {"type": "photo", "sort_order": 1, "storage_path": "early.jpg"},
    ]

    assert select_hero(media, url_for) == {"type": "photo", "url": "https://cdn.test/early.jpg"}


def test_hero_is_none_without_media():
    assert select_hero([], url_for) is None
    assert select_hero(None, url_for) is None
