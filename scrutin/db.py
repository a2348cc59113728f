from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .config import DATABASE_URL, IS_SQLITE

# SQLite est partagé entre les threads du serveur ASGI
connect_args = {"check_same_thread": False} if IS_SQLITE else {}
engine = create_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    pool_pre_ping=not IS_SQLITE,
    connect_args=connect_args,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


def create_tables(bind=None) -> None:
    """Crée les tables manquantes (participations, redressements, affectations)."""
    from . import models  # noqa: F401  (enregistre les modèles sur Base)

    Base.metadata.create_all(bind=bind or engine)


def get_session():
    """Dépendance FastAPI : une session par requête, toujours refermée."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
