"""Account-scoped views over synchronized collections."""

from fintrack.views.composer import (
    AccountScopedViewComposer,
    AccountView,
    ViewListener,
    filter_by_account,
)

__all__ = [
    "AccountScopedViewComposer",
    "AccountView",
    "ViewListener",
    "filter_by_account",
]
