"""
Admin dashboard statistics.

Every figure is recomputed from the posts and users collections on each call.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import env
from util.dates_utils import month_key, month_label, month_windows
from util.mongodb_utils import get_mongo_collection

logger = logging.getLogger(__name__)

RECENT_DAYS = 30
TOP_POSTS_LIMIT = 5
RECENT_USERS_LIMIT = 5
MONTHS_OF_HISTORY = 6


def calculate_growth_rate(current: int, previous: int) -> float:
    """
    Month-over-month growth as a percentage rounded to one decimal.

    Returns 0 when the previous month had no posts.
    """
    if not previous:
        return 0
    return round((current - previous) / previous * 100, 1)


def count_posts_by_category(posts_coll) -> dict:
    return {category: posts_coll.count_documents({"category": category}) for category in env.CATEGORIES}


def count_monthly_posts(posts_coll, now: datetime, months: int = MONTHS_OF_HISTORY) -> list:
    monthly = []
    for start, end in month_windows(now, months):
        monthly.append({
            "month": month_key(start),
            "label": month_label(start),
            "count": posts_coll.count_documents({"createdAt": {"$gte": start, "$lt": end}}),
        })
    return monthly


def get_admin_stats(now: Optional[datetime] = None) -> dict:
    """
    Aggregate the admin dashboard figures.

    Args:
        now: Reference time, defaults to the current time

    Returns:
        dict: {"stats": {...}, "postsByCategory": {...}, "topPosts": [...],
               "monthlyPosts": [...], "recentUsers": [...]}
    """
    now = now or datetime.now()
    posts_coll = get_mongo_collection(collection_name="posts")
    users_coll = get_mongo_collection(collection_name="users")

    monthly_posts = count_monthly_posts(posts_coll, now)
    current_month = monthly_posts[-1]["count"]
    previous_month = monthly_posts[-2]["count"]

    top_posts = list(
        posts_coll.find({}, {"title": 1, "category": 1, "likes": 1, "views": 1, "createdAt": 1})
        .sort([("likes", -1), ("views", -1), ("createdAt", -1)])
        .limit(TOP_POSTS_LIMIT)
    )
    recent_users = list(
        users_coll.find({}, {"name": 1, "email": 1, "role": 1, "createdAt": 1})
        .sort([("createdAt", -1)])
        .limit(RECENT_USERS_LIMIT)
    )

    stats = {
        "totalPosts": posts_coll.count_documents({}),
        "totalUsers": users_coll.count_documents({}),
        "recentPosts": posts_coll.count_documents({"createdAt": {"$gte": now - timedelta(days=RECENT_DAYS)}}),
        "growthRate": calculate_growth_rate(current_month, previous_month),
    }
    logger.info(f"Computed admin stats: {stats}")

    return {
        "stats": stats,
        "postsByCategory": count_posts_by_category(posts_coll),
        "topPosts": top_posts,
        "monthlyPosts": monthly_posts,
        "recentUsers": recent_users,
    }
