"""
VisualFlowExecutionLog Model - step-level audit trail of an execution.

Every operation invocation produces a 'running' entry followed by exactly one
'success' or 'failure' entry. The synthetic trigger entry has no operation_id.
"""
import uuid
from visual_flows.utils.helpers import utcnow
from enum import Enum

from visual_flows.database import db


class LogStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"


class VisualFlowExecutionLog(db.Model):
    __tablename__ = 'visual_flow_execution_log'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    execution_id = db.Column(
        db.String(36),
        db.ForeignKey('visual_flow_execution.id', ondelete='CASCADE'),
        nullable=False
    )
    operation_id = db.Column(db.String(36), nullable=True)
    operation_key = db.Column(db.String(255), nullable=False)

    # Insertion order within the execution; timestamps can collide
    sequence = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False)

    input_data = db.Column(db.JSON)
    output_data = db.Column(db.JSON)

    error = db.Column(db.Text)
    error_stack = db.Column(db.Text)

    duration_ms = db.Column(db.Integer)

    executed_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    execution = db.relationship('VisualFlowExecution', back_populates='logs')

    __table_args__ = (
        db.Index('idx_vf_log_execution_id', 'execution_id'),
        db.Index('idx_vf_log_operation_key', 'operation_key'),
        db.Index('idx_vf_log_status', 'status'),
        db.Index('idx_vf_log_exec_sequence', 'execution_id', 'sequence'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'execution_id': self.execution_id,
            'operation_id': self.operation_id,
            'operation_key': self.operation_key,
            'status': self.status,
            'input_data': self.input_data,
            'output_data': self.output_data,
            'error': self.error,
            'error_stack': self.error_stack,
            'duration_ms': self.duration_ms,
            'executed_at': self.executed_at.isoformat() if self.executed_at else None,
        }
