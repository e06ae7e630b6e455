"""
Pub/sub fan-out of JSON messages.

Publishing is fire-and-forget. Each subscription owns its own store
connection and a bounded queue of decoded messages, and can be closed
without touching other subscribers of the channel.
"""

from .subscription import Subscription
from .broker import PubSubBroker

__all__ = ["Subscription", "PubSubBroker"]
