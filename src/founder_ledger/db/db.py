from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from founder_ledger.db.models import Base


def create_db_engine(db_file: str | Path, *, echo: bool = False) -> Engine:
    engine = create_engine(f"sqlite:///{Path(db_file)}", echo=echo)
    Base.metadata.create_all(engine)
    return engine


def init_db(echo: bool = False, *, db_file: str | Path) -> Session:
    path = Path(db_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(path, echo=echo)
    return sessionmaker(engine)()
