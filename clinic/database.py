from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clinic.config import get_settings

DATABASE_URL = get_settings().database_url

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
local_session = sessionmaker(bind=engine, autocommit=False, autoflush=False)

def get_db():
    db = local_session()
    try:
        yield db
    finally:
        db.close()
