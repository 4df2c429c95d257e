"""SQLAlchemy database models for the application"""
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Float, ForeignKey, JSON,
    CheckConstraint, UniqueConstraint, Index, func
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()


class User(Base):
    """User account model"""
    __tablename__ = 'users'

    uid = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    display_name = Column(String(255), nullable=False)
    photo_url = Column(String(500), nullable=False, default='', server_default='')
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default='student', server_default='student')
    # Always written together with role
    is_privileged = Column(Boolean, nullable=False, default=False, server_default='0')
    login_count = Column(Integer, nullable=False, default=0, server_default='0')
    last_login = Column(DateTime, nullable=True)

    # Exam progress, maintained by the exam collaborator
    total_exams = Column(Integer, nullable=False, default=0, server_default='0')
    completed_exams = Column(Integer, nullable=False, default=0, server_default='0')
    average_score = Column(Float, nullable=False, default=0.0, server_default='0')

    current_streak = Column(Integer, nullable=False, default=0, server_default='0')
    longest_streak = Column(Integer, nullable=False, default=0, server_default='0')

    created_at = Column(DateTime, default=datetime.utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow,
                        server_default=func.now())

    # Relationships
    received_messages = relationship("Message", back_populates="recipient",
                                     foreign_keys="Message.recipient_uid",
                                     cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("role IN ('guest', 'student', 'advanced', 'teacher', 'admin')",
                        name='check_user_role'),
        CheckConstraint("login_count >= 0", name='check_login_count'),
        CheckConstraint("total_exams >= 0", name='check_total_exams'),
        Index('idx_users_role', 'role'),
        Index('idx_users_created_at', 'created_at'),
    )


class Connection(Base):
    """Teacher/student link; one row is visible from both accounts"""
    __tablename__ = 'connections'

    id = Column(Integer, primary_key=True, autoincrement=True)
    teacher_uid = Column(String(128), ForeignKey('users.uid', ondelete='CASCADE'), nullable=False)
    student_uid = Column(String(128), ForeignKey('users.uid', ondelete='CASCADE'), nullable=False)
    status = Column(String(20), nullable=False, default='active', server_default='active')
    created_at = Column(DateTime, default=datetime.utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow,
                        server_default=func.now())

    __table_args__ = (
        UniqueConstraint('teacher_uid', 'student_uid', name='uq_connection_pair'),
        CheckConstraint("status IN ('active', 'inactive', 'blocked')", name='check_connection_status'),
        Index('idx_connections_teacher_uid', 'teacher_uid'),
        Index('idx_connections_student_uid', 'student_uid'),
    )


class Message(Base):
    """Direct message delivered to a user's inbox"""
    __tablename__ = 'messages'

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_uid = Column(String(128), ForeignKey('users.uid', ondelete='CASCADE'), nullable=False)
    sender_uid = Column(String(128), ForeignKey('users.uid', ondelete='SET NULL'), nullable=True)
    sender_name = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)
    read = Column(Boolean, nullable=False, default=False, server_default='0')
    created_at = Column(DateTime, default=datetime.utcnow, server_default=func.now())

    # Relationships
    recipient = relationship("User", back_populates="received_messages",
                             foreign_keys=[recipient_uid])

    __table_args__ = (
        Index('idx_messages_recipient_uid', 'recipient_uid'),
    )


class SystemSettings(Base):
    """Key/value store for site-wide settings"""
    __tablename__ = 'system_settings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), nullable=False, unique=True)
    value = Column(JSON, nullable=False)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow,
                        server_default=func.now())
    updated_by = Column(String(128), nullable=True)
