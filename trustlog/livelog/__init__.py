"""trustlog.livelog

The public real-time feed: publisher, broadcaster, read side, backfill.
"""

from trustlog.livelog.backfill import BackfillStats, backfill
from trustlog.livelog.broadcast import Broadcaster
from trustlog.livelog.feed import FeedStats, LivelogFeed
from trustlog.livelog.publisher import Publisher, PublishResult, PublishStatus

__all__ = [
    "BackfillStats",
    "Broadcaster",
    "FeedStats",
    "LivelogFeed",
    "PublishResult",
    "PublishStatus",
    "Publisher",
    "backfill",
]
