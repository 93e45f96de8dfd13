"""
Installer roster management
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from scheduler.models.assignment import Assignment
from scheduler.models.installer import Installer
from scheduler.models.user import User
from scheduler.utils.error_handler import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

class InstallerService:
    """Service for installer CRUD and user linking"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_installer(self, installer_id: int) -> Installer:
        installer = self.db.query(Installer).filter(Installer.id == installer_id).first()
        if not installer:
            raise NotFoundError(f"Installer {installer_id} not found")
        return installer
    
    def list_installers(self, active_only: bool = False) -> list[Installer]:
        query = self.db.query(Installer)
        if active_only:
            query = query.filter(Installer.is_active == 1)
        return query.order_by(Installer.name).all()
    
    def get_by_user(self, user_id: int) -> Optional[Installer]:
        return self.db.query(Installer).filter(Installer.user_id == user_id).first()
    
    def create_installer(self, data: dict) -> Installer:
        if not (data.get("name") or "").strip():
            raise ValidationError("Installer name is required")
        installer = Installer(**data)
        self.db.add(installer)
        self.db.commit()
        self.db.refresh(installer)
        logger.info(f"Created installer {installer.id}: {installer.name}")
        return installer
    
    def bulk_create(self, rows: list[dict]) -> list[Installer]:
        for index, row in enumerate(rows):
            if not (row.get("name") or "").strip():
                raise ValidationError(f"Installer name is required (row {index + 1})")
        installers = [Installer(**row) for row in rows]
        self.db.add_all(installers)
        self.db.commit()
        logger.info(f"Bulk created {len(installers)} installers")
        return installers
    
    def update_installer(self, installer_id: int, data: dict) -> Installer:
        installer = self.get_installer(installer_id)
        if "name" in data and not (data["name"] or "").strip():
            raise ValidationError("Installer name cannot be empty")
        for field, value in data.items():
            setattr(installer, field, value)
        self.db.commit()
        self.db.refresh(installer)
        logger.info(f"Updated installer {installer_id}")
        return installer
    
    def delete_installer(self, installer_id: int) -> None:
        """Hard delete; refused while the installer still holds assignments"""
        installer = self.get_installer(installer_id)
        held = self.db.query(Assignment).filter(Assignment.installer_id == installer_id).count()
        if held:
            raise ConflictError(
                f"Installer {installer.name} still has {held} assignment(s); unassign them or deactivate the installer",
                error_code="INSTALLER_HAS_ASSIGNMENTS"
            )
        self.db.delete(installer)
        self.db.commit()
        logger.info(f"Deleted installer {installer_id}")
    
    def link_user(self, installer_id: int, user_id: int) -> Installer:
        installer = self.get_installer(installer_id)
        if not self.db.query(User).filter(User.id == user_id).first():
            raise NotFoundError(f"User {user_id} not found")
        linked = self.get_by_user(user_id)
        if linked and linked.id != installer_id:
            raise ConflictError(f"User {user_id} is already linked to installer {linked.name}")
        installer.user_id = user_id
        self.db.commit()
        self.db.refresh(installer)
        logger.info(f"Linked user {user_id} to installer {installer_id}")
        return installer
    
    def unlink_user(self, installer_id: int) -> Installer:
        installer = self.get_installer(installer_id)
        installer.user_id = None
        self.db.commit()
        self.db.refresh(installer)
        logger.info(f"Unlinked user from installer {installer_id}")
        return installer
