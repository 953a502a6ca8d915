"""
VisualFlowExecution Model - one run of a flow against one trigger payload.

Each execution keeps:
- trigger_data: payload the flow was started with
- data_chain: snapshot of the data chain (updated on start and on finish)
- status: 'pending', 'running', 'completed', 'failed', 'cancelled'
- error / error_details: populated when status = 'failed'
"""
import uuid
from visual_flows.utils.helpers import utcnow
from enum import Enum

from visual_flows.database import db


class ExecutionStatus(str, Enum):
    """Execution lifecycle"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({
    ExecutionStatus.COMPLETED.value,
    ExecutionStatus.FAILED.value,
    ExecutionStatus.CANCELLED.value,
})


class VisualFlowExecution(db.Model):
    __tablename__ = 'visual_flow_execution'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Not a foreign key: runs against a missing flow are still recorded
    flow_id = db.Column(db.String(36), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=ExecutionStatus.PENDING.value)

    trigger_data = db.Column(db.JSON, nullable=False, default=dict)
    data_chain = db.Column(db.JSON, nullable=False, default=dict)

    # === Errors ===
    error = db.Column(db.Text)
    error_details = db.Column(db.JSON)

    triggered_by = db.Column(db.String(255))
    execution_metadata = db.Column('metadata', db.JSON, nullable=False, default=dict)

    # === Timestamps ===
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    logs = db.relationship(
        'VisualFlowExecutionLog',
        back_populates='execution',
        cascade='all, delete-orphan',
        order_by='VisualFlowExecutionLog.sequence',
    )

    __table_args__ = (
        db.Index('idx_vf_execution_flow_id', 'flow_id'),
        db.Index('idx_vf_execution_status', 'status'),
        db.Index('idx_vf_execution_started', 'started_at'),
    )

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def to_dict(self, include_logs=False):
        result = {
            'id': self.id,
            'flow_id': self.flow_id,
            'status': self.status,
            'trigger_data': self.trigger_data or {},
            'data_chain': self.data_chain or {},
            'error': self.error,
            'error_details': self.error_details,
            'triggered_by': self.triggered_by,
            'metadata': self.execution_metadata or {},
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }
        if include_logs:
            result['logs'] = [log.to_dict() for log in self.logs]
        return result
