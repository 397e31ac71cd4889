from datetime import datetime

from .extensions import db


class Participant(db.Model):
    __tablename__ = "participants"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)

    registered_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Participant {self.name!r}>"


class Exclusion(db.Model):
    """
    Unordered constraint: neither person may gift to the other.
    Stored with person_a_id < person_b_id so each pair has one row.
    """
    __tablename__ = "exclusions"
    id = db.Column(db.Integer, primary_key=True)

    person_a_id = db.Column(db.Integer, db.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    person_b_id = db.Column(db.Integer, db.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)

    person_a = db.relationship(
        "Participant",
        foreign_keys=[person_a_id],
        backref=db.backref("exclusions_as_a", cascade="all, delete-orphan"),
    )
    person_b = db.relationship(
        "Participant",
        foreign_keys=[person_b_id],
        backref=db.backref("exclusions_as_b", cascade="all, delete-orphan"),
    )

    __table_args__ = (
        db.UniqueConstraint("person_a_id", "person_b_id", name="uq_exclusion_pair"),
        db.CheckConstraint("person_a_id < person_b_id", name="ordered_pair"),
    )

    @classmethod
    def between(cls, first: Participant, second: Participant) -> "Exclusion":
        low, high = sorted((first, second), key=lambda p: p.id)
        return cls(person_a_id=low.id, person_b_id=high.id)

    @property
    def names(self) -> tuple[str, str]:
        return self.person_a.name, self.person_b.name
