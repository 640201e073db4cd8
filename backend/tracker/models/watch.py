import enum

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import relationship

from .base import BaseModel


class WatchStatus(str, enum.Enum):
    IN_STOCK = "in_stock"
    PENDING = "pending"
    SOLD = "sold"


class Watch(BaseModel):
    __tablename__ = "user_watches"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    brand = Column(String, nullable=False)
    model = Column(String, nullable=False)
    reference_number = Column(String, nullable=True)
    serial_number = Column(String, nullable=True)
    year = Column(Integer, nullable=True)
    condition = Column(String, nullable=True)
    purchase_price = Column(Numeric(10, 2), nullable=True)
    sale_price = Column(Numeric(10, 2), nullable=True)
    status = Column(
        SQLAlchemyEnum(
            WatchStatus,
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=WatchStatus.IN_STOCK,
    )
    notes = Column(Text, nullable=True)

    user = relationship("User", back_populates="watches")

    @property
    def display_name(self) -> str:
        """Line-item description, e.g. "Rolex Submariner 126610LN"."""
        parts = [self.brand, self.model, self.reference_number]
        return " ".join(p for p in parts if p)
