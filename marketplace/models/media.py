"""
Media assets attached to a Specialist listing.

The binary lives in object storage; this row keeps the public URL and the
storage ``public_id`` needed to delete it again.
"""

from marketplace.models import db
from marketplace.models.enums import MediaType
from marketplace.models.soft_delete import SoftDeleteMixin, TimestampMixin
from marketplace.utils.helpers import isoformat


class Media(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "media"

    specialist_id = db.Column(
        db.String(36), db.ForeignKey("specialists.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    url = db.Column(db.String(1000), nullable=False)
    public_id = db.Column(db.String(500), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_size = db.Column(db.Integer, nullable=False)
    mime_type = db.Column(db.String(50), nullable=False)
    media_type = db.Column(db.String(20), nullable=False, default=MediaType.GALLERY.value)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    uploaded_by_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))

    specialist = db.relationship("Specialist", back_populates="media")

    def to_dict(self):
        return {
            "id": self.id,
            "specialist_id": self.specialist_id,
            "url": self.url,
            "public_id": self.public_id,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "media_type": self.media_type,
            "display_order": self.display_order,
            "uploaded_by_id": self.uploaded_by_id,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
