"""Event type constants.

Learn: Centralizing event types as constants prevents typos and makes it
easy to discover every event the push channel can carry. The strings are
part of the wire contract with browsers, so they never change once shipped.
"""

# ─── Users and invite codes ──────────────────────────────

USER_CREATED = "user_created"
USER_UPDATED = "user_updated"
INVITE_CODE_CREATED = "invite_code_created"
INVITE_CODE_DELETED = "invite_code_deleted"

# ─── Files ───────────────────────────────────────────────

FILE_UPLOADED = "file_uploaded"
FILE_UPDATED = "file_updated"
FILE_DELETED = "file_deleted"
FILE_VERSION_CREATED = "file_version_created"
FILE_DOWNLOADED = "file_downloaded"
FILE_COMMENT_CREATED = "file_comment_created"
FILE_COMMENT_DELETED = "file_comment_deleted"
FILE_TAG_ADDED = "file_tag_added"
FILE_TAG_REMOVED = "file_tag_removed"
FAVORITE_ADDED = "favorite_added"
FAVORITE_REMOVED = "favorite_removed"

# ─── FAQ ─────────────────────────────────────────────────

FAQ_PRODUCT_CREATED = "faq_product_created"
FAQ_PRODUCT_UPDATED = "faq_product_updated"
FAQ_PRODUCT_DELETED = "faq_product_deleted"
FAQ_ITEM_CREATED = "faq_item_created"
FAQ_ITEM_UPDATED = "faq_item_updated"
FAQ_ITEM_DELETED = "faq_item_deleted"

# ─── Announcements and notifications ─────────────────────

ANNOUNCEMENT_CREATED = "announcement_created"
ANNOUNCEMENT_UPDATED = "announcement_updated"
ANNOUNCEMENT_DELETED = "announcement_deleted"
NEW_NOTIFICATION = "new_notification"
NOTIFICATION_READ = "notification_read"
NOTIFICATIONS_READ_ALL = "notifications_read_all"

# ─── Tags and collections ────────────────────────────────

TAG_CREATED = "tag_created"
TAG_UPDATED = "tag_updated"
TAG_DELETED = "tag_deleted"
COLLECTION_CREATED = "collection_created"
COLLECTION_UPDATED = "collection_updated"
COLLECTION_DELETED = "collection_deleted"
COLLECTION_FILE_ADDED = "collection_file_added"
COLLECTION_FILE_REMOVED = "collection_file_removed"

# ─── Chat, forum, direct messages ────────────────────────

CHAT_MESSAGE = "chat_message"
FORUM_CATEGORY_CREATED = "forum_category_created"
FORUM_CATEGORY_UPDATED = "forum_category_updated"
FORUM_CATEGORY_DELETED = "forum_category_deleted"
FORUM_THREAD_CREATED = "forum_thread_created"
FORUM_THREAD_UPDATED = "forum_thread_updated"
FORUM_THREAD_DELETED = "forum_thread_deleted"
FORUM_POST_CREATED = "forum_post_created"
FORUM_POST_UPDATED = "forum_post_updated"
FORUM_POST_DELETED = "forum_post_deleted"
DIRECT_MESSAGE_SENT = "direct_message_sent"
DIRECT_MESSAGES_READ = "direct_messages_read"

# ─── Outgoing webhooks ───────────────────────────────────

WEBHOOK_CREATED = "webhook_created"
WEBHOOK_UPDATED = "webhook_updated"
WEBHOOK_DELETED = "webhook_deleted"
