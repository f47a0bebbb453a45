from sqlalchemy import Column, Integer, String, Date, DateTime
from app.db.base import Base
import datetime as dt

class Todo(Base):
    __tablename__ = "todos"

    # Ids are assigned by the graph store, not the database
    id = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String, nullable=False)
    due_date = Column(Date, nullable=True)
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=dt.datetime.utcnow, index=True)
