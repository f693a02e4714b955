# pylint: disable=line-too-long
"""
Models for Destiny 2 weapon records.

This module defines Pydantic models for the records produced by the manifest pipeline and SQLAlchemy ORM models for their persistence.
Includes:
- Frame, Intrinsic, Perk: plug descriptors resolved from sockets.
- WeaponItem, WeaponFull, WeaponConcise: the three weapon record shapes.
- AuxiliaryData, ManifestMetadata, SyncResult: pipeline inputs and outputs.
- ORM models for the record store schema.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import JSON, BigInteger, Column, DateTime, Index, Integer, String
from sqlalchemy.orm import declarative_base


# --- Pydantic Models ---
class Frame(BaseModel):
    """
    Intrinsic frame perk of a weapon.

    Attributes:
        hash (int): Plug item hash.
        name (str): Display name.
        description (str): Display description.
        iconSrc (Optional[str]): Absolute icon URL.
    """
    model_config = ConfigDict(frozen=True)

    hash: int
    name: str
    description: str = ""
    iconSrc: Optional[str] = None


class Intrinsic(Frame):
    """Origin trait tied to how a weapon is acquired."""


class Perk(BaseModel):
    """
    One candidate perk within a perk column.

    Attributes:
        isCurated (bool): Part of the socket's own curated roll.
        curatedExclusive (bool): Curated but absent from the random pool.
        isDeprecated (bool): In the pool but can no longer roll.
    """
    model_config = ConfigDict(frozen=True)

    hash: int
    name: str
    description: str = ""
    itemType: str = ""
    iconSrc: Optional[str] = None
    isCurated: bool = False
    curatedExclusive: bool = False
    isDeprecated: bool = False


class WeaponItem(BaseModel):
    """
    Scalar and presentation fields of a weapon.

    Attributes:
        tierType (int): 5 = Legendary, 6 = Exotic.
        damageType (int): DestinyDamageType enum value.
        slot (int): 0 kinetic, 1 energy, 2 power, -1 unknown.
        ammoType (int): DestinyAmmunitionType enum value.
        source (Optional[int]): Collectible source hash.
        season (Optional[int]): Season number, when it can be derived.
        event (Optional[int]): Event number, when it can be derived.
    """
    model_config = ConfigDict(frozen=True)

    hash: int
    name: str
    flavorText: str = ""
    tierType: int = 0
    itemType: str = ""
    damageType: int = 0
    slot: int = -1
    ammoType: int = 0
    source: Optional[int] = None
    iconSrc: Optional[str] = None
    watermarkSrc: Optional[str] = None
    watermarkFeaturedSrc: Optional[str] = None
    screenshotSrc: Optional[str] = None
    foundrySrc: Optional[str] = None
    isCraftable: bool = False
    isAdept: bool = False
    isHolofoil: bool = False
    isFeatured: bool = False
    season: Optional[int] = None
    event: Optional[int] = None


class WeaponFull(BaseModel):
    """Weapon item with its frame, origin traits and perk columns."""
    model_config = ConfigDict(frozen=True)

    hash: int
    item: WeaponItem
    frame: Optional[Frame] = None
    intrinsics: List[Intrinsic] = list()
    perks: List[List[Perk]] = list()


class WeaponConcise(BaseModel):
    """Flattened weapon record for list views; frame and perks are names only."""
    model_config = ConfigDict(frozen=True)

    hash: int
    name: str
    tierType: int = 0
    itemType: str = ""
    damageType: int = 0
    slot: int = -1
    ammoType: int = 0
    source: Optional[int] = None
    iconSrc: Optional[str] = None
    watermarkSrc: Optional[str] = None
    watermarkFeaturedSrc: Optional[str] = None
    isCraftable: bool = False
    isAdept: bool = False
    isHolofoil: bool = False
    isFeatured: bool = False
    season: Optional[int] = None
    event: Optional[int] = None
    frame: str = ""
    perks: List[List[str]] = list()

    @classmethod
    def from_full(cls, weapon: WeaponFull) -> "WeaponConcise":
        """Project a WeaponFull onto the concise shape."""
        item = weapon.item
        return cls(
            hash=weapon.hash,
            name=item.name,
            tierType=item.tierType,
            itemType=item.itemType,
            damageType=item.damageType,
            slot=item.slot,
            ammoType=item.ammoType,
            source=item.source,
            iconSrc=item.iconSrc,
            watermarkSrc=item.watermarkSrc,
            watermarkFeaturedSrc=item.watermarkFeaturedSrc,
            isCraftable=item.isCraftable,
            isAdept=item.isAdept,
            isHolofoil=item.isHolofoil,
            isFeatured=item.isFeatured,
            season=item.season,
            event=item.event,
            frame=weapon.frame.name if weapon.frame else "",
            perks=[[perk.name for perk in column] for column in weapon.perks],
        )


class AuxiliaryData(BaseModel):
    """
    Lookups loaded from DIM's d2ai-module repository.

    Attributes:
        watermarkToSeason (Dict[str, int]): Watermark path -> season.
        watermarkToEvent (Dict[str, int]): Watermark path -> event.
        sourceToSeason (Dict[str, int]): Collectible source hash -> season.
        seasons (Dict[str, int]): Item hash -> season.
        events (Dict[str, int]): Item hash -> event.
        craftableHashes (List[int]): Hashes of craftable weapons.
    """
    watermarkToSeason: Dict[str, int] = dict()
    watermarkToEvent: Dict[str, int] = dict()
    sourceToSeason: Dict[str, int] = dict()
    seasons: Dict[str, int] = dict()
    events: Dict[str, int] = dict()
    craftableHashes: List[int] = list()


class ManifestMetadata(BaseModel):
    """Manifest version token and relative download path per definition table."""
    version: str
    paths: Dict[str, str]


class SyncResult(BaseModel):
    """Outcome of a manifest sync."""
    version: str
    weaponCount: int
    cached: bool


# --- SQLAlchemy ORM Models ---

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ManifestMetadataEntry(Base):
    """
    SQLAlchemy ORM model for key/value sync metadata (the manifest version token).
    """
    __tablename__ = 'ManifestMetadata'
    key = Column(String(50), primary_key=True)
    value = Column(String(255), nullable=False)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)


class HelperData(Base):
    """
    SQLAlchemy ORM model for cached helper blobs (d2ai lookups, damage type icons).
    """
    __tablename__ = 'HelperData'
    key = Column(String(50), primary_key=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)


class WeaponRecord(Base):
    """
    SQLAlchemy ORM model holding one WeaponFull record keyed by weapon hash.
    """
    __tablename__ = 'Weapons'
    hash = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(String(200))
    data = Column(JSON, nullable=False)


class WeaponConciseRecord(Base):
    """
    SQLAlchemy ORM model holding one WeaponConcise record, with the columns used for filtering.
    """
    __tablename__ = 'WeaponsConcise'
    hash = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(String(200))
    tier_type = Column(Integer)
    slot = Column(Integer)
    item_type = Column(String(100))
    data = Column(JSON, nullable=False)
    __table_args__ = (
        Index('IX_WeaponsConcise_TierType', 'tier_type'),
        Index('IX_WeaponsConcise_Slot', 'slot'),
        Index('IX_WeaponsConcise_ItemType', 'item_type'),
    )
