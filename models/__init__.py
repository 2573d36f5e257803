from datetime import datetime

from flask_login import UserMixin

from database import db
from utils.statuses import OrderStatus
from utils.text_utils import clean_str, iso, to_int

from .catalog import Material, MaterialCategory, Profession  # noqa: F401
from .settings import Settings, UserPreferences  # noqa: F401


class User(db.Model, UserMixin):
    __tablename__ = "user"
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(10), nullable=False, default="user", index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    preferences = db.relationship(
        "UserPreferences",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self):
        return self.role == "admin"

    def get_id(self):
        return str(self.id)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "createdAt": iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.username}>"


class Client(db.Model):
    __tablename__ = "client"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, index=True)
    realm = db.Column(db.String(120), index=True)
    character = db.Column(db.String(120))
    discord = db.Column(db.String(120))
    notes = db.Column(db.Text)
    joined_date = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    orders = db.relationship("Order", back_populates="client", lazy="dynamic")

    # JSON key → column
    FIELDS = {
        "name": "name",
        "realm": "realm",
        "character": "character",
        "discord": "discord",
        "notes": "notes",
    }

    def update_from(self, data: dict) -> None:
        for key, attr in self.FIELDS.items():
            if key in data:
                value = data[key]
                setattr(self, attr, value if attr == "notes" else clean_str(value))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "realm": self.realm,
            "character": self.character,
            "discord": self.discord,
            "notes": self.notes,
            "joinedDate": iso(self.joined_date),
            "updatedAt": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Client {self.name}>"


class OrderGroup(db.Model):
    __tablename__ = "order_group"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    orders = db.relationship("Order", back_populates="group", lazy="dynamic")

    def to_dict(self, order_count=None):
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if order_count is not None:
            data["orderCount"] = order_count
        return data

    def __repr__(self):
        return f"<OrderGroup {self.name}>"


class Order(db.Model):
    # "order" is a reserved word in SQL
    __tablename__ = "orders"
    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(
        db.Integer, db.ForeignKey("client.id"), nullable=True, index=True
    )
    client_name = db.Column(db.String(120))
    client_realm = db.Column(db.String(120))
    character = db.Column(db.String(120))
    professions = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(
        db.String(20), nullable=False, default=OrderStatus.PENDING.value, index=True
    )
    price = db.Column(db.Integer, nullable=False, default=0)
    initial_payment = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text)
    checked_resources = db.Column(db.JSON, nullable=False, default=dict)
    order_group_id = db.Column(
        db.Integer,
        db.ForeignKey("order_group.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    completed_at = db.Column(db.DateTime)

    client = db.relationship("Client", back_populates="orders")
    group = db.relationship("OrderGroup", back_populates="orders")

    def update_from(self, data: dict) -> None:
        """Copy plain fields; ids, status and group are handled by the caller."""
        if "clientName" in data:
            self.client_name = clean_str(data["clientName"], 120)
        if "clientRealm" in data:
            self.client_realm = clean_str(data["clientRealm"], 120)
        if "character" in data:
            self.character = clean_str(data["character"], 120)
        if "professions" in data:
            professions = data["professions"]
            self.professions = list(professions) if isinstance(professions, list) else []
        if "price" in data:
            self.price = to_int(data["price"])
        if "initialPayment" in data:
            self.initial_payment = to_int(data["initialPayment"])
        if "notes" in data:
            self.notes = data["notes"]
        if "checkedResources" in data and isinstance(data["checkedResources"], dict):
            self.checked_resources = dict(data["checkedResources"])

    @property
    def display_name(self):
        return f"{self.client_name or 'Client'} - {self.character or 'Sans personnage'}"

    @property
    def remaining(self):
        return (self.price or 0) - (self.initial_payment or 0)

    def to_dict(self):
        return {
            "id": self.id,
            "clientId": self.client_id,
            "clientName": self.client_name,
            "clientRealm": self.client_realm,
            "character": self.character,
            "professions": self.professions or [],
            "status": self.status,
            "price": self.price or 0,
            "initialPayment": self.initial_payment or 0,
            "notes": self.notes,
            "checkedResources": self.checked_resources or {},
            "orderGroupId": self.order_group_id,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
            "completedAt": iso(self.completed_at),
        }

    def __repr__(self):
        return f"<Order {self.id} {self.status}>"
