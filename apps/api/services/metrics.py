from prometheus_client import Counter

# Metrics definition
UPLOADS = Counter(
    "media_uploads_total",
    "Accepted uploads",
    ["kind"]  # "image", "video"
)

UPLOAD_REJECTIONS = Counter(
    "media_upload_rejections_total",
    "Uploads refused before storage",
    ["reason"]  # "kind", "size", "empty", "storage"
)

THUMBNAIL_FAILURES = Counter(
    "media_thumbnail_failures_total",
    "Images stored without a thumbnail"
)

STORAGE_DELETE_FAILURES = Counter(
    "media_storage_delete_failures_total",
    "File deletes that did not succeed",
    ["backend"]  # "local", "cos"
)

ORPHANS_DELETED = Counter(
    "media_orphans_deleted_total",
    "Unreferenced local files removed by cleanup"
)
