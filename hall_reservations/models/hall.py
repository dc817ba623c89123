from sqlalchemy import Column, Integer, String, Text, Boolean, Float, Numeric, DateTime, JSON
from sqlalchemy.orm import relationship

from hall_reservations.db.session import Base, utcnow


class Hall(Base):
    __tablename__ = "halls"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    description = Column(Text)
    capacity = Column(Integer, nullable=False)
    area_sqft = Column(Float, nullable=True)
    location = Column(String, nullable=True)
    rules = Column(Text, nullable=True)

    # Pricing fields (informational; quoting happens outside the core)
    hourly_rate = Column(Numeric(12, 2), nullable=False, default=0)
    daily_rate = Column(Numeric(12, 2), nullable=True)
    security_deposit = Column(Numeric(12, 2), nullable=False, default=0)

    # Ordered labels, duplicates allowed
    equipment = Column(JSON, nullable=False, default=list)

    is_available = Column(Boolean, nullable=False, default=True)
    deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # RELATIONSHIPS -------------------------------------

    images = relationship(
        "HallImage",
        back_populates="hall",
        cascade="all, delete-orphan",
        order_by="HallImage.position",
    )

    bookings = relationship("Booking", back_populates="hall")

    @property
    def main_image(self):
        return next((img.public_id for img in self.images if img.is_main), None)

    def __repr__(self) -> str:
        return f"<Hall(id={self.id}, name={self.name!r}, capacity={self.capacity})>"
