from __future__ import annotations

from datetime import datetime

from database import db
from utils.text_utils import clean_str, iso, to_int

# Level brackets with a price range on every profession
PRICE_BRACKETS = ("225", "300", "375", "450", "525")


class MaterialCategory(db.Model):
    """Grouping of materials in the catalogue."""

    __tablename__ = "material_category"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, index=True)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    materials = db.relationship("Material", back_populates="category", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class Material(db.Model):
    """Resource consumed while levelling a profession."""

    __tablename__ = "material"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    icon_name = db.Column(db.String(200))
    quantity = db.Column(db.Integer, nullable=False, default=0)
    profession = db.Column(db.String(100), index=True)
    professions = db.Column(db.JSON, nullable=False, default=list)
    used_by = db.Column(db.JSON, nullable=False, default=list)
    level_range = db.Column(db.String(20), index=True)
    category_id = db.Column(
        db.Integer, db.ForeignKey("material_category.id"), nullable=True, index=True
    )
    is_bar = db.Column(db.Boolean, nullable=False, default=False)
    bar_crafting = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    category = db.relationship("MaterialCategory", back_populates="materials")

    def update_from(self, data: dict) -> None:
        """Copy plain fields; categoryId is resolved by the caller."""
        if "name" in data:
            self.name = clean_str(data["name"], 200)
        if "iconName" in data:
            self.icon_name = clean_str(data["iconName"], 200)
        if "quantity" in data:
            self.quantity = to_int(data["quantity"])
        if "profession" in data:
            self.profession = clean_str(data["profession"], 100)
        if "professions" in data and isinstance(data["professions"], list):
            self.professions = [p for p in data["professions"] if p]
        if "usedBy" in data and isinstance(data["usedBy"], list):
            self.used_by = [u for u in data["usedBy"] if isinstance(u, dict)]
        if "levelRange" in data:
            self.level_range = clean_str(data["levelRange"], 20)
        if "isBar" in data:
            self.is_bar = bool(data["isBar"])
        if "barCrafting" in data:
            crafting = data["barCrafting"]
            self.bar_crafting = dict(crafting) if isinstance(crafting, dict) else None

    def profession_names(self) -> set[str]:
        """Every profession this material is attached to."""
        names = set()
        if self.profession:
            names.add(self.profession)
        names.update(p for p in (self.professions or []) if isinstance(p, str))
        for entry in self.used_by or []:
            if isinstance(entry, dict) and entry.get("profession"):
                names.add(entry["profession"])
        return names

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "iconName": self.icon_name,
            "quantity": self.quantity or 0,
            "profession": self.profession,
            "professions": self.professions or [],
            "usedBy": self.used_by or [],
            "levelRange": self.level_range,
            "categoryId": self.category_id,
            "isBar": bool(self.is_bar),
            "barCrafting": self.bar_crafting,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


def normalize_price_ranges(raw) -> dict:
    """Coerce {"225": {"min": "10", "max": "x"}} to integers (0 when not numeric)."""
    if not isinstance(raw, dict):
        return {}
    ranges = {}
    for bracket, bounds in raw.items():
        if not isinstance(bounds, dict):
            continue
        ranges[str(bracket)] = {
            "min": to_int(bounds.get("min")),
            "max": to_int(bounds.get("max")),
        }
    return ranges


class Profession(db.Model):
    """Craft line with prices per level bracket."""

    __tablename__ = "profession"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, index=True)
    icon = db.Column(db.String(200))
    description = db.Column(db.Text)
    price_ranges = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def update_from(self, data: dict) -> None:
        if "name" in data:
            self.name = clean_str(data["name"], 100)
        if "icon" in data:
            self.icon = clean_str(data["icon"], 200)
        if "description" in data:
            self.description = data["description"]
        if "priceRanges" in data:
            self.price_ranges = normalize_price_ranges(data["priceRanges"])

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "priceRanges": self.price_ranges or {},
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
