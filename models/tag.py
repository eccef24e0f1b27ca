from database import db
from utils.dates import utcnow


# Many-to-many link between tasks and tags
task_tags = db.Table(
    "task_tags",
    db.Column("task_id", db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    db.Column("tag_id", db.Integer, db.ForeignKey("tag.id", ondelete="CASCADE"), primary_key=True),
)

DEFAULT_TAG_COLOR = "#6B7280"


class Tag(db.Model):
    __tablename__ = "tag"

    __table_args__ = (
        db.UniqueConstraint("owner_id", "name", name="uq_tag_owner_name"),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, index=True)
    color = db.Column(db.String(7), nullable=False, default=DEFAULT_TAG_COLOR)
    description = db.Column(db.Text, nullable=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    tasks = db.relationship(
        "Task",
        secondary=task_tags,
        back_populates="tags",
        lazy="selectin",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "color": self.color,
            "description": self.description,
            "task_count": len(self.tasks) if self.tasks is not None else 0,
        }

    def __repr__(self):
        return f"<Tag #{self.name}>"
