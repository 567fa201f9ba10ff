"""Page routes of the web client, used for `redirect_to` and link fields."""

HOME = "/"
LOGIN = "/login"
CREATE = "/create"
MY_LISTINGS = "/my-listings"
MESSAGES = "/messages"
PROFILE = "/profile"


def listing_detail(listing_id) -> str:
    return f"/listing/{listing_id}"


def listing_edit(listing_id) -> str:
    return f"/listing/{listing_id}/edit"


def message_thread(thread_id) -> str:
    return f"/messages/{thread_id}"
