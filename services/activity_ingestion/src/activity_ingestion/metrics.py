from prometheus_client import Counter, Histogram

FILES_PROCESSED_TOTAL = Counter(
    "activity_files_processed_total", "Uploaded files handled by the pipeline", ["result"]
)

PIPELINE_STAGE_TIME = Histogram(
    "activity_pipeline_stage_seconds", "Time spent in each pipeline stage", ["stage"]
)

RECONCILE_ACTIONS_TOTAL = Counter(
    "activity_reconcile_actions_total", "Decisions taken by the reconciliation scan", ["action"]
)
