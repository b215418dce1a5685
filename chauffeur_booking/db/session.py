from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from chauffeur_booking.core.config import DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(bind=engine, autoflush=False)

Base = declarative_base()
