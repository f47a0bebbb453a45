from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.config import get_config

DATABASE_URL = get_config().database_url

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
