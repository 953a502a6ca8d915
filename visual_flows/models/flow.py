"""
Visual Flow Models - Flow definitions (operations + connections)
"""
from visual_flows.database import db
from visual_flows.utils.helpers import utcnow
import uuid
from enum import Enum


def _new_id():
    return str(uuid.uuid4())


class FlowStatus(str, Enum):
    """Flow status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class TriggerType(str, Enum):
    """What starts a flow"""
    EVENT = "event"
    SCHEDULE = "schedule"
    WEBHOOK = "webhook"
    MANUAL = "manual"
    ANOTHER_FLOW = "another_flow"


class ConnectionType(str, Enum):
    """Branch discriminator on a connection"""
    SUCCESS = "success"
    FAILURE = "failure"
    DEFAULT = "default"


class VisualFlow(db.Model):
    """
    Visual Flow - an automation made of operations wired by connections
    """
    __tablename__ = 'visual_flow'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)

    status = db.Column(db.String(20), default=FlowStatus.DRAFT.value, nullable=False)

    # Trigger
    trigger_type = db.Column(db.String(20), default=TriggerType.MANUAL.value, nullable=False)
    trigger_config = db.Column(db.JSON, nullable=False, default=dict)  # {"event": "order.placed", ...}

    # Editor state (React Flow nodes/edges/viewport)
    canvas_state = db.Column(db.JSON, nullable=False, default=dict)
    flow_metadata = db.Column('metadata', db.JSON, nullable=False, default=dict)

    # Relationships
    operations = db.relationship(
        'VisualFlowOperation',
        back_populates='flow',
        cascade='all, delete-orphan',
        order_by='VisualFlowOperation.sort_order',
    )
    connections = db.relationship('VisualFlowConnection', back_populates='flow', cascade='all, delete-orphan')

    __table_args__ = (
        db.Index('idx_visual_flow_status', 'status'),
        db.Index('idx_visual_flow_trigger_type', 'trigger_type'),
    )

    def to_dict(self, include_graph=False):
        result = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'status': self.status,
            'trigger_type': self.trigger_type,
            'trigger_config': self.trigger_config or {},
            'canvas_state': self.canvas_state or {},
            'metadata': self.flow_metadata or {},
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_graph:
            result['operations'] = [op.to_dict() for op in self.operations]
            result['connections'] = [conn.to_dict() for conn in self.connections]
        return result


class VisualFlowOperation(db.Model):
    """
    A single configured step of a flow. operation_key doubles as its data chain key.
    """
    __tablename__ = 'visual_flow_operation'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    flow_id = db.Column(db.String(36), db.ForeignKey('visual_flow.id', ondelete='CASCADE'), nullable=False)

    operation_key = db.Column(db.String(255), nullable=False)
    operation_type = db.Column(db.String(100), nullable=False)
    name = db.Column(db.String(255))
    options = db.Column(db.JSON, nullable=False, default=dict)

    # Canvas position
    position_x = db.Column(db.Float, nullable=False, default=0)
    position_y = db.Column(db.Float, nullable=False, default=0)

    sort_order = db.Column(db.Integer, nullable=False, default=0)

    flow = db.relationship('VisualFlow', back_populates='operations')

    __table_args__ = (
        db.Index('idx_vf_operation_flow_id', 'flow_id'),
        db.Index('idx_vf_operation_key', 'operation_key'),
        db.Index('idx_vf_operation_type', 'operation_type'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'flow_id': self.flow_id,
            'operation_key': self.operation_key,
            'operation_type': self.operation_type,
            'name': self.name,
            'options': self.options or {},
            'position_x': self.position_x,
            'position_y': self.position_y,
            'sort_order': self.sort_order,
        }


class VisualFlowConnection(db.Model):
    """
    Directed edge between two operations. source_id may be the literal 'trigger'.
    """
    __tablename__ = 'visual_flow_connection'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    flow_id = db.Column(db.String(36), db.ForeignKey('visual_flow.id', ondelete='CASCADE'), nullable=False)

    source_id = db.Column(db.String(36), nullable=False)
    source_handle = db.Column(db.String(50), nullable=False, default='default')
    target_id = db.Column(db.String(36), nullable=False)
    target_handle = db.Column(db.String(50), nullable=False, default='default')

    connection_type = db.Column(db.String(20), nullable=False, default=ConnectionType.DEFAULT.value)
    condition = db.Column(db.JSON)
    label = db.Column(db.String(255))

    flow = db.relationship('VisualFlow', back_populates='connections')

    __table_args__ = (
        db.Index('idx_vf_connection_flow_id', 'flow_id'),
        db.Index('idx_vf_connection_source', 'source_id'),
        db.Index('idx_vf_connection_target', 'target_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'flow_id': self.flow_id,
            'source_id': self.source_id,
            'source_handle': self.source_handle,
            'target_id': self.target_id,
            'target_handle': self.target_handle,
            'connection_type': self.connection_type,
            'condition': self.condition,
            'label': self.label,
        }
