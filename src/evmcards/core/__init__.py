"""
Core runtime: RPC client, background tasks, receipt tracking, replays and
the session that owns the card store.
"""

from .rpc_client import RpcClient, to_serializable
from .messages import (
    CallCompleted,
    TransactionSubmitted,
    Notice,
    ViewReady,
    ReceiptResolved,
    PollStalled,
    ConnectionChanged,
    AccountInfo,
)
from .tasks import TaskRunner
from .tracker import PendingOperationTracker
from .replay import TracerReplayController, TraceRequest, CallTraceRequest
from .viewer import ExternalViewer, copy_to_clipboard
from .session import Deployment, Session

__all__ = [
    'RpcClient',
    'to_serializable',
    'CallCompleted',
    'TransactionSubmitted',
    'Notice',
    'ViewReady',
    'ReceiptResolved',
    'PollStalled',
    'ConnectionChanged',
    'AccountInfo',
    'TaskRunner',
    'PendingOperationTracker',
    'TracerReplayController',
    'TraceRequest',
    'CallTraceRequest',
    'ExternalViewer',
    'copy_to_clipboard',
    'Deployment',
    'Session',
]
