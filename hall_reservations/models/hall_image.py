from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from hall_reservations.db.session import Base


class HallImage(Base):
    __tablename__ = "hall_images"

    id = Column(Integer, primary_key=True, index=True)
    hall_id = Column(Integer, ForeignKey("halls.id", ondelete="CASCADE"), nullable=False, index=True)

    public_id = Column(String, nullable=False)  # blob store reference (for delete)
    image_url = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    is_main = Column(Boolean, default=False, nullable=False)  # Mark main/cover image

    hall = relationship("Hall", back_populates="images")

    __table_args__ = (UniqueConstraint("hall_id", "public_id", name="uq_hall_image_ref"),)
