"""
Service order model
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, UniqueConstraint
from sqlalchemy.sql import func
from scheduler.database import Base

ORDER_STATUSES = [
    "pending", "assigned", "on_the_way", "met_customer", "order_completed",
    "docket_received", "docket_uploaded", "ready_to_invoice", "invoiced", "completed",
    "customer_issue", "building_issue", "network_issue", "rescheduled", "withdrawn",
]
RESCHEDULE_REASONS = ["customer_issue", "building_issue", "network_issue"]
PRIORITIES = ["low", "medium", "high"]

# Columns whose changes are diffed into order_history
# NOT NULL columns an update may not blank out
REQUIRED_FIELDS = ["service_number", "customer_name", "estimated_duration", "priority", "status"]

TRACKED_FIELDS = [
    "order_number", "ticket_number", "service_number", "customer_name", "customer_phone",
    "customer_email", "service_type", "sales_modi_type", "address", "appointment_date",
    "appointment_time", "building_name", "estimated_duration", "priority", "status",
    "reschedule_reason", "rescheduled_date", "rescheduled_time", "notes",
    "docket_file_url", "docket_file_name",
]

class Order(Base):
    """A unit of work to be performed at a customer site"""
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("service_number", "order_number", name="uq_order_service_number"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(100), index=True, nullable=True)
    ticket_number = Column(String(100), nullable=True)
    service_number = Column(String(100), index=True, nullable=False)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    customer_email = Column(String(320), nullable=True)
    service_type = Column(String(100), nullable=True)
    sales_modi_type = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    appointment_date = Column(String(50), nullable=True)  # free text, see parse_appointment_date
    appointment_time = Column(String(50), nullable=True)
    building_name = Column(String(255), nullable=True)
    estimated_duration = Column(Integer, default=60, nullable=False)  # minutes
    priority = Column(String(10), default="medium", nullable=False)
    status = Column(String(30), default="pending", nullable=False, index=True)
    reschedule_reason = Column(String(30), nullable=True)
    rescheduled_date = Column(DateTime, nullable=True)
    rescheduled_time = Column(String(10), nullable=True)
    notes = Column(Text, nullable=True)
    docket_file_url = Column(String(500), nullable=True)
    docket_file_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    def __repr__(self):
        return f"<Order(id={self.id}, order_number='{self.order_number}', status='{self.status}')>"
