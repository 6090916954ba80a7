"""
Seed script: creates demo sites served by the mock snapshot source.
Run manually: python -m scripts.seed
"""
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlmodel import Session, select, SQLModel

from netaudit.db.session import get_engine
from netaudit.models import *  # noqa

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("seed")

_DEMO_SITES = [
    ("Home Lab", "Demo site served by the mock source"),
    ("Branch Office", "Second demo site"),
]


def seed():
    engine = get_engine()
    SQLModel.metadata.create_all(engine)

    with Session(engine) as s:
        for name, description in _DEMO_SITES:
            if not s.exec(select(Site).where(Site.name == name)).first():
                s.add(Site(name=name, description=description, source="mock"))
                s.commit()
                logger.info("Created site: %s", name)


if __name__ == "__main__":
    seed()
