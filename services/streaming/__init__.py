"""
Streaming Services
==================

Incremental mindmap generation from a streamed AI response: the session
state machine, the orchestrator driving tree building and layout, and the
session result types.

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""

from services.streaming.exceptions import InvalidTransitionError, StreamingError, TransportFailure
from services.streaming.orchestrator import StreamingOrchestrator, open_session
from services.streaming.session import SessionResult, StreamMetrics
from services.streaming.state_machine import StreamStateMachine

__all__ = [
    'InvalidTransitionError',
    'StreamingError',
    'TransportFailure',
    'StreamingOrchestrator',
    'open_session',
    'SessionResult',
    'StreamMetrics',
    'StreamStateMachine',
]
