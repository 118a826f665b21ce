from spares.models.league import League
from spares.models.member import Member
from spares.models.notification_delivery import NotificationDelivery
from spares.models.notification_queue_item import NotificationQueueItem
from spares.models.server_config import ServerConfig
from spares.models.spare_request import SpareRequest

__all__ = [
    "League",
    "Member",
    "NotificationDelivery",
    "NotificationQueueItem",
    "ServerConfig",
    "SpareRequest",
]
