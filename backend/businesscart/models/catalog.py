from __future__ import annotations

from ..extensions import db
from ..ids import new_id
from businesscart.time_utils import to_utc_z, utcnow


class Product(db.Model):
    """Seller-owned product listing. seller_id is the company account id."""
    __tablename__ = "products"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    seller_id = db.Column(db.String(32), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    image = db.Column(db.String(1024), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sellerId": self.seller_id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "image": self.image,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
