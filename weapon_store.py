# pylint: disable=broad-exception-caught, line-too-long
"""
WeaponStore module for persisting Destiny 2 weapon records.

Wraps a SQLAlchemy engine holding four independent namespaces:
    - ManifestMetadata: key/value sync metadata (the manifest version token)
    - HelperData: cached JSON blobs (d2ai lookups, damage type icons)
    - Weapons / WeaponsConcise: full and concise weapon records keyed by hash

Weapon records and the version token are only ever replaced together, inside one transaction.
"""
import logging
import threading
import urllib.parse
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from constants import (DATABASE_URL, SQL_DATABASE, SQL_DRIVER, SQL_PASSWORD,
                       SQL_SERVER, SQL_USER, SQLITE_PATH, VERSION_KEY,
                       DAMAGE_TYPE_ICONS_KEY)
from models import (Base, HelperData, ManifestMetadataEntry, WeaponConcise,
                    WeaponConciseRecord, WeaponFull, WeaponRecord)


def build_database_url() -> str:
    """
    Resolve the database URL from configuration.

    DATABASE_URL wins when set. Otherwise an Azure SQL URL is built from the AZURE_SQL_* settings,
    falling back to a local SQLite file.
    """
    if DATABASE_URL:
        return DATABASE_URL
    if SQL_SERVER and SQL_DATABASE:
        if SQL_USER and SQL_PASSWORD:
            auth_segment = f"UID={SQL_USER};PWD={SQL_PASSWORD};"
        else:
            auth_segment = "authentication=ActiveDirectoryMsi;"
        odbc_str = (
            f"DRIVER={{{SQL_DRIVER}}};"
            f"SERVER={SQL_SERVER};"
            f"DATABASE={SQL_DATABASE};"
            f"{auth_segment}"
            "Encrypt=yes;"
            "TrustServerCertificate=no;"
            "Connection Timeout=30;"
        )
        return "mssql+pyodbc:///?odbc_connect=" + urllib.parse.quote_plus(odbc_str)
    return f"sqlite:///{SQLITE_PATH}"


class WeaponStore:
    """
    Thread-safe singleton for the weapon record store.

    Use WeaponStore.instance() to get the shared instance, or construct one directly with a database URL (tests).
    """
    _instance = None

    @classmethod
    def instance(cls, *args, **kwargs) -> "WeaponStore":
        """
        Get the thread-safe shared instance of the WeaponStore singleton.

        Returns:
            WeaponStore: Shared singleton instance.
        """
        if not hasattr(cls, "_instance_lock"):
            cls._instance_lock = threading.RLock()
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls(*args, **kwargs)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (useful for tests)."""
        if hasattr(cls, "_instance_lock"):
            with cls._instance_lock:
                cls._instance = None
        else:
            cls._instance = None

    def __init__(self, database_url: str = None, echo: bool = False):
        """
        Initialize the store and create its tables if missing.

        Args:
            database_url (str): SQLAlchemy URL. Defaults to build_database_url().
            echo (bool): Log emitted SQL.
        """
        self.database_url = database_url or build_database_url()
        engine_kwargs: dict = {"echo": echo}
        if self.database_url.startswith("mssql"):
            engine_kwargs.update({
                "pool_pre_ping": True,
                "pool_recycle": 1800,
                "pool_timeout": 60,
                "max_overflow": 5,
                "pool_size": 2,
            })
        self.engine = create_engine(self.database_url, **engine_kwargs)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)  # pylint: disable=invalid-name
        Base.metadata.create_all(self.engine)
        logging.info("WeaponStore initialized (%s).", self.engine.url.get_backend_name())

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Open a session that commits on success and rolls back on any error.
        """
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # --- Metadata (version token) ---

    def get_metadata(self, key: str) -> Optional[str]:
        """Return a metadata value, or None if unset."""
        with self.Session() as session:
            entry = session.get(ManifestMetadataEntry, key)
            return entry.value if entry else None

    def put_metadata(self, key: str, value: str) -> None:
        """Insert or replace a metadata value."""
        with self.transaction() as session:
            session.merge(ManifestMetadataEntry(key=key, value=value))

    def delete_metadata(self, key: str) -> None:
        """Remove a metadata value if present."""
        with self.transaction() as session:
            session.execute(delete(ManifestMetadataEntry).where(ManifestMetadataEntry.key == key))

    def get_cached_version(self) -> Optional[str]:
        """Return the persisted manifest version token."""
        return self.get_metadata(VERSION_KEY)

    # --- Helper data (d2ai cache, damage type icons) ---

    def get_helper_data(self, key: str) -> Any:
        """Return a cached helper blob, or None if absent."""
        with self.Session() as session:
            entry = session.get(HelperData, key)
            return entry.data if entry else None

    def put_helper_data(self, key: str, data: Any) -> None:
        """Insert or replace a cached helper blob."""
        with self.transaction() as session:
            session.merge(HelperData(key=key, data=data))

    def delete_helper_data(self, key: str) -> None:
        """Remove a cached helper blob if present."""
        with self.transaction() as session:
            session.execute(delete(HelperData).where(HelperData.key == key))

    def get_damage_type_icons(self) -> Dict[int, str]:
        """Return the damage type enum value -> icon URL map persisted by the last sync."""
        data = self.get_helper_data(DAMAGE_TYPE_ICONS_KEY) or {}
        return {int(k): v for k, v in data.items()}

    # --- Weapon records ---

    def replace_weapons(
        self,
        version: str,
        full: List[WeaponFull],
        concise: List[WeaponConcise],
        helper_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Atomically swap the weapon record sets and the version token.

        Clears both weapon tables, bulk inserts the new records, writes the version token
        and any helper blobs, all in one transaction. On failure nothing is changed.

        Args:
            version (str): New manifest version token.
            full (List[WeaponFull]): Full weapon records.
            concise (List[WeaponConcise]): Concise weapon records.
            helper_data (Dict[str, Any], optional): Helper blobs to store alongside.
        """
        with self.transaction() as session:
            session.execute(delete(WeaponRecord))
            session.execute(delete(WeaponConciseRecord))
            session.add_all(
                WeaponRecord(hash=w.hash, name=w.item.name, data=w.model_dump(mode="json"))
                for w in full
            )
            session.add_all(
                WeaponConciseRecord(
                    hash=c.hash,
                    name=c.name,
                    tier_type=c.tierType,
                    slot=c.slot,
                    item_type=c.itemType,
                    data=c.model_dump(mode="json"),
                )
                for c in concise
            )
            session.merge(ManifestMetadataEntry(key=VERSION_KEY, value=version))
            for key, data in (helper_data or {}).items():
                session.merge(HelperData(key=key, data=data))
        logging.info("Persisted %d weapons for manifest version %s.", len(full), version)

    def clear_weapon_data(self) -> None:
        """Remove all weapon records and the version token."""
        with self.transaction() as session:
            session.execute(delete(WeaponRecord))
            session.execute(delete(WeaponConciseRecord))
            session.execute(delete(ManifestMetadataEntry).where(ManifestMetadataEntry.key == VERSION_KEY))

    def get_weapon_by_hash(self, weapon_hash: int) -> Optional[WeaponFull]:
        """Return one full weapon record, or None."""
        with self.Session() as session:
            row = session.get(WeaponRecord, int(weapon_hash))
            return WeaponFull.model_validate(row.data) if row else None

    def get_weapons_by_hashes(self, hashes: List[int]) -> List[WeaponFull]:
        """Return the full records that exist among the given hashes."""
        if not hashes:
            return []
        with self.Session() as session:
            rows = session.scalars(
                select(WeaponRecord).where(WeaponRecord.hash.in_([int(h) for h in hashes]))
            ).all()
            return [WeaponFull.model_validate(row.data) for row in rows]

    def _select_concise(self, *criteria) -> List[WeaponConcise]:
        with self.Session() as session:
            rows = session.scalars(select(WeaponConciseRecord).where(*criteria)).all()
            return [WeaponConcise.model_validate(row.data) for row in rows]

    def get_all_weapons_concise(self) -> List[WeaponConcise]:
        """Return every concise weapon record."""
        return self._select_concise()

    def get_weapons_by_tier(self, tier_type: int) -> List[WeaponConcise]:
        """Return concise records with the given tier type (5 Legendary, 6 Exotic)."""
        return self._select_concise(WeaponConciseRecord.tier_type == tier_type)

    def get_weapons_by_slot(self, slot: int) -> List[WeaponConcise]:
        """Return concise records for a weapon slot (0 kinetic, 1 energy, 2 power)."""
        return self._select_concise(WeaponConciseRecord.slot == slot)

    def get_weapons_by_item_type(self, item_type: str) -> List[WeaponConcise]:
        """Return concise records of one item type, e.g. "Hand Cannon"."""
        return self._select_concise(WeaponConciseRecord.item_type == item_type)

    def search_weapons_by_name(self, query: str) -> List[WeaponConcise]:
        """Case-insensitive partial name match over concise records."""
        pattern = f"%{(query or '').lower()}%"
        return self._select_concise(func.lower(WeaponConciseRecord.name).like(pattern))

    def get_weapon_count(self) -> int:
        """Return the number of persisted concise records."""
        with self.Session() as session:
            return session.scalar(select(func.count()).select_from(WeaponConciseRecord)) or 0

    def is_initialized(self) -> bool:
        """True once at least one weapon record has been persisted."""
        return self.get_weapon_count() > 0

    def get_unique_item_types(self) -> List[str]:
        """Return the sorted distinct item types among concise records."""
        with self.Session() as session:
            types = session.scalars(select(WeaponConciseRecord.item_type).distinct()).all()
            return sorted(t for t in types if t is not None)
