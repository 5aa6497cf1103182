"""Live and batch punctuation rewriting"""
from fixcnchar.core.rewriter.batch import BatchRewriter, RewriteOutcome
from fixcnchar.core.rewriter.guard import ProcessingGuard
from fixcnchar.core.rewriter.live import (
    BatchState,
    CorrectionBatch,
    LiveRewriter,
    PendingCorrection,
    RewriterStats,
)
from fixcnchar.core.rewriter.scheduler import (
    AsyncioScheduler,
    ManualScheduler,
    Scheduler,
    ThreadedScheduler,
)

__all__ = [
    'BatchRewriter',
    'RewriteOutcome',
    'ProcessingGuard',
    'BatchState',
    'CorrectionBatch',
    'LiveRewriter',
    'PendingCorrection',
    'RewriterStats',
    'AsyncioScheduler',
    'ManualScheduler',
    'Scheduler',
    'ThreadedScheduler',
]
