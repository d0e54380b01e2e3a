from datetime import datetime
from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

# --- User model ---
class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    songs = db.relationship("Song", backref="owner", lazy="dynamic")
    setlists = db.relationship("Setlist", backref="owner", lazy="dynamic")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

# --- Song model ---
class Song(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    lyrics = db.Column(db.Text, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Entry rows are removed by store.delete_song so each setlist's order gap is closed first
    setlist_links = db.relationship("SetlistSong", back_populates="song", lazy="select")

    def __repr__(self) -> str:
        return f"<Song id={self.id} title={self.title!r}>"

# --- Setlist + join table ---
class Setlist(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    entries = db.relationship(
        "SetlistSong",
        back_populates="setlist",
        cascade="all, delete-orphan",
        order_by="SetlistSong.order.asc()",
        lazy="joined",
    )

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def __repr__(self) -> str:
        return f"<Setlist id={self.id} name={self.name!r}>"

class SetlistSong(db.Model):
    __table_args__ = (
        db.UniqueConstraint("setlist_id", "song_id", name="uq_setlist_song"),
    )

    id = db.Column(db.Integer, primary_key=True)

    setlist_id = db.Column(db.Integer, db.ForeignKey("setlist.id"), nullable=False, index=True)
    song_id    = db.Column(db.Integer, db.ForeignKey("song.id"),    nullable=False, index=True)

    # 1..n, dense per setlist (see ordering.py)
    order      = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    setlist = db.relationship("Setlist", back_populates="entries")
    song = db.relationship("Song", back_populates="setlist_links", lazy="joined")

    def __repr__(self) -> str:
        return f"<SetlistSong setlist_id={self.setlist_id} song_id={self.song_id} order={self.order}>"
