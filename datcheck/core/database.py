# ==============================================================================
# HASH CACHE DATABASE MODULE
# ==============================================================================
# SQLite cache of file digests, so repeated audits of a large collection only
# rehash files that changed. Uses SQLAlchemy ORM for data access.
#
# A cached digest is keyed by (path, member, algorithm) and is only trusted
# while the file's size and modification time (ns) are unchanged. For
# archive members, `member` is the path inside the archive and size/mtime
# are those of the archive itself.
#
# Tables:
#   - hashes: one row per cached digest
#
# Concurrency:
#   Pipeline workers only call lookup(), each in its own session. New digests
#   are written by the pipeline's coordinator in a single store_many() batch.
#
# Usage:
#   cache = HashCache("~/.config/DatCheck/hashcache.db")
#   digest = cache.lookup("/roms/a.bin", "", "sha1", size, mtime_ns)
#   cache.store_many([{...}, {...}])
# ==============================================================================

import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import (BigInteger, Column, DateTime, Integer, String,
                        UniqueConstraint, create_engine, func)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .exceptions import HashCacheError

logger = logging.getLogger(__name__)

# ==============================================================================
# SQLAlchemy Base Class
# ==============================================================================
Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


# ==============================================================================
# CACHED HASH MODEL
# ==============================================================================
class CachedHash(Base):
    """
    A cached digest for a file or archive member.

    Attributes:
        id (int):          Unique identifier
        path (str):        Absolute path of the file (or containing archive)
        member (str):      Path inside the archive, '' for loose files
        algorithm (str):   Hash algorithm tag ('sha1', 'md5', 'crc')
        size (int):        File size in bytes when hashed
        mtime_ns (int):    File modification time (ns) when hashed
        digest (str):      Lowercase hex digest
        updated_at:        When the row was last written
    """
    __tablename__ = 'hashes'
    __table_args__ = (
        UniqueConstraint('path', 'member', 'algorithm', name='uq_hash_key'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    path = Column(String(1024), nullable=False, index=True)
    member = Column(String(1024), nullable=False, default='')
    algorithm = Column(String(8), nullable=False)
    size = Column(BigInteger, nullable=False)
    mtime_ns = Column(BigInteger, nullable=False)
    digest = Column(String(64), nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<CachedHash(path='{self.path}', member='{self.member}', algorithm='{self.algorithm}')>"


# ==============================================================================
# HASH CACHE CLASS
# ==============================================================================
class HashCache:
    """
    Persistent digest cache.

    Attributes:
        db_path (str): Path to the SQLite database file
        engine: SQLAlchemy engine instance
        Session: SQLAlchemy session factory
    """

    def __init__(self, db_path: str):
        """
        Open (or create) the cache database.

        Args:
            db_path: Path to the SQLite database file

        Raises:
            HashCacheError: If the database cannot be created or opened
        """
        self.db_path = os.path.abspath(os.path.expanduser(db_path))

        try:
            os.makedirs(os.path.dirname(self.db_path), exist_ok=True)
            # Sessions are opened from worker threads, so connections must
            # not be pinned to the thread that created them
            self.engine = create_engine(
                f'sqlite:///{self.db_path}',
                echo=False,
                connect_args={'check_same_thread': False}
            )
            self.Session = sessionmaker(bind=self.engine)
            Base.metadata.create_all(self.engine)
        except (OSError, SQLAlchemyError) as e:
            raise HashCacheError(f"Cannot open hash cache '{self.db_path}': {e}") from e

        logger.debug("Opened hash cache %s", self.db_path)

    def close(self):
        """Release all pooled connections."""
        self.engine.dispose()

    # ==========================================================================
    # READS (any thread)
    # ==========================================================================

    def lookup(self, path: str, member: str, algorithm: str,
               size: int, mtime_ns: int) -> Optional[str]:
        """
        Get a cached digest if the file is unchanged.

        Args:
            path:      Absolute path of the file or archive
            member:    Member path inside the archive ('' for loose files)
            algorithm: Hash algorithm tag
            size:      Current size of the file
            mtime_ns:  Current modification time in ns

        Returns:
            The cached digest, or None on a miss or a stale entry
        """
        session = self.Session()
        try:
            row = session.query(CachedHash).filter(
                CachedHash.path == path,
                CachedHash.member == member,
                CachedHash.algorithm == algorithm
            ).first()
            if row is None or row.size != size or row.mtime_ns != mtime_ns:
                return None
            return row.digest
        except SQLAlchemyError as e:
            logger.warning("Hash cache lookup failed for %s: %s", path, e)
            return None
        finally:
            session.close()

    # ==========================================================================
    # WRITES (coordinator only)
    # ==========================================================================

    def store_many(self, records: List[Dict]) -> int:
        """
        Insert or update digests in a single transaction.

        Args:
            records: Dicts with keys path, member, algorithm, size,
                     mtime_ns and digest

        Returns:
            Number of records written
        """
        if not records:
            return 0

        session = self.Session()
        try:
            for record in records:
                row = session.query(CachedHash).filter(
                    CachedHash.path == record['path'],
                    CachedHash.member == record['member'],
                    CachedHash.algorithm == record['algorithm']
                ).first()
                if row is None:
                    session.add(CachedHash(**record))
                else:
                    row.size = record['size']
                    row.mtime_ns = record['mtime_ns']
                    row.digest = record['digest']
            session.commit()
            logger.debug("Stored %d digests in hash cache", len(records))
            return len(records)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Hash cache update failed: %s", e)
            return 0
        finally:
            session.close()

    def clear(self) -> int:
        """
        Delete every cached digest.

        Returns:
            Number of rows deleted
        """
        session = self.Session()
        try:
            deleted = session.query(CachedHash).delete()
            session.commit()
            return deleted
        finally:
            session.close()

    # ==========================================================================
    # STATISTICS
    # ==========================================================================

    def stats(self) -> Dict:
        """Get the number of cached digests, overall and per algorithm."""
        session = self.Session()
        try:
            per_algorithm = dict(
                session.query(CachedHash.algorithm, func.count(CachedHash.id))
                .group_by(CachedHash.algorithm)
                .all()
            )
            return {
                'path': self.db_path,
                'total': sum(per_algorithm.values()),
                'by_algorithm': per_algorithm
            }
        finally:
            session.close()
