"""
UAT Tracker
Store tables for the UAT domain.

Models:
    - UatProject:      one UAT cycle (table ``uat_project``)
    - TestCaseRow:     scripted test case with execution outcome
    - ParticipantRow:  tester / observer enrolled in a cycle
    - ApprovalRow:     sign-off given by one approving party
    - ChangeLogRow:    append-only field-level change history

Column names are the store's vocabulary; the persistence mappers in
``uat_tracker.services.mappers`` translate them to entity records.
Primary keys are UUID strings assigned by the caller.
"""

from datetime import datetime, timezone

from uat_tracker.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class UatProject(db.Model):
    """A UAT cycle: tested version + month."""

    __tablename__ = "uat_project"

    id = db.Column(db.String(36), primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    test_version = db.Column(db.String(100), nullable=True, default="")
    month = db.Column(db.String(50), nullable=True, default="")
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self):
        return f"<UatProject {self.id}: {self.name}>"


class TestCaseRow(db.Model):
    __tablename__ = "test_case"
    __test__ = False
    __table_args__ = (
        db.Index("ix_test_case_project_number", "project_id", "test_number"),
    )

    id = db.Column(db.String(36), primary_key=True)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("uat_project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    test_number = db.Column(db.String(50), default="")
    category = db.Column(db.String(200), default="")
    role = db.Column(db.String(200), default="")
    test_scenario = db.Column(db.Text, default="")
    preconditions = db.Column(db.Text, default="")
    test_steps = db.Column(db.Text, default="")
    expected_results = db.Column(db.Text, default="")
    actual_results = db.Column(db.Text, default="")
    status = db.Column(
        db.String(20), default="",
        comment="'' | Pass | Partial | Fail | Inapplicable",
    )
    remarks = db.Column(db.Text, default="")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<TestCaseRow {self.id}: {self.test_number}>"


class ParticipantRow(db.Model):
    __tablename__ = "participant"

    id = db.Column(db.String(36), primary_key=True)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("uat_project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    demo_account = db.Column(db.String(200), default="")
    role = db.Column(db.String(200), default="")
    name = db.Column(db.String(200), default="")
    email = db.Column(db.String(255), default="")
    participant_type = db.Column(
        db.String(20), default="external",
        comment="internal | vendor | external",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<ParticipantRow {self.id}: {self.name}>"


class ApprovalRow(db.Model):
    """One row per approving party per project."""

    __tablename__ = "approval_signoff"

    id = db.Column(db.String(36), primary_key=True)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("uat_project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = db.Column(db.String(200), default="")
    name = db.Column(db.String(200), default="")
    unit = db.Column(db.String(200), default="")
    date = db.Column(db.String(50), default="", comment="Free-form sign-off date")
    signature_file_path = db.Column(db.String(500), default="")
    verified_by = db.Column(db.String(200), default="")
    remarks = db.Column(db.Text, default="")
    month = db.Column(db.String(50), default="")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<ApprovalRow {self.id}: {self.role}/{self.name}>"


class ChangeLogRow(db.Model):
    """
    Append-only change history.

    One row per changed field; deletions are recorded as a single row with
    ``field='deleted'``. Rows are never updated or removed by the service.
    """

    __tablename__ = "change_log"
    __table_args__ = (
        db.Index("ix_change_log_entity", "entity", "entity_id"),
        db.Index("ix_change_log_project_ts", "project_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("uat_project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entity = db.Column(
        db.String(30), nullable=False,
        comment="project | test_case | participant | approval_signoff",
    )
    entity_id = db.Column(db.String(36), nullable=False)
    field = db.Column(db.String(60), nullable=False)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    user_name = db.Column(db.String(200), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<ChangeLogRow {self.id}: {self.entity}/{self.entity_id}.{self.field}>"
