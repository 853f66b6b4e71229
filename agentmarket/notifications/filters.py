"""
Predicates for filtered notification views.
"""

from typing import Callable, Union

from agentmarket.kernel.models.notification import Notification, NotificationType

NotificationPredicate = Callable[[Notification], bool]


def everything(notification: Notification) -> bool:
    return True


def unread(notification: Notification) -> bool:
    return not notification.is_read


def by_type(kind: Union[NotificationType, str]) -> NotificationPredicate:
    """Match one notification type; raises ValueError for unknown types."""
    kind = NotificationType(kind)

    def matches(notification: Notification) -> bool:
        return notification.type is kind

    return matches


def for_tab(tab: str) -> NotificationPredicate:
    """Predicate for a feed tab: 'all', 'unread', or a type name such as 'order'."""
    if tab == "all":
        return everything
    if tab == "unread":
        return unread
    return by_type(tab)
