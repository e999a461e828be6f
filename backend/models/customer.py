# backend/models/customer.py
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base

# Represents a customer account placing orders
class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False)
    phone = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
