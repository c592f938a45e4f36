from sqlalchemy import Column, Integer, String, Float, Date, UniqueConstraint
from .database import Base


class PanelValue(Base):
    __tablename__ = "panel_values"
    __table_args__ = (UniqueConstraint("panel", "date", "series", name="uq_panel_date_series"),)

    id = Column(Integer, primary_key=True)
    panel = Column(String(64), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    series = Column(String(64), nullable=False)
    value = Column(Float)
