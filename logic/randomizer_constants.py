from enum import Enum, IntEnum


class Range():
  RANDOMIZED_AREA_NUMBERS = range(0, 0x10)  # Area 0x10 is the end game
  CRYPT_AREA_NUMBERS = range(0x04, 0x0C)  # Crypts 1-8
  VALID_CHEST_INDICES = range(0, 8)  # Eight chests per area (0-indexed)


class Gate(str, Enum):
  """Progression gates. Values match the spelling used in checks.json."""
  RAINBOW_DROP = "rainbow-drop"
  FALCON_SHOES = "falcon-shoes"
  FIRE_WAND = "fire-wand"
  BELL = "bell"


class Item(IntEnum):
  BOMBS = 0x00
  MEDICINE = 0x01
  FIRE_WAND = 0x02
  SKY_BELL = 0x03
  WINGS = 0x04
  MOONBEAM_MOSS = 0x05
  MAGIC_RING = 0x06
  SWORD = 0x08
  ARMOR = 0x09
  SHIELD = 0x0A
  FALCON_SHOES = 0x0B
  RAINBOW_DROP = 0x0C
  BOOK_OF_REVIVAL = 0x0D
  CRYSTAL_BALL = 0x10
  CRYPT_KEY = 0x11
  CRYPT_1_MEDALLION = 0x12
  CRYPT_2_MEDALLION = 0x13
  CRYPT_3_MEDALLION = 0x14
  CRYPT_4_MEDALLION = 0x15
  CRYPT_5_MEDALLION = 0x16
  CRYPT_6_MEDALLION = 0x17
  CRYPT_7_MEDALLION = 0x18
  CRYPT_8_MEDALLION = 0x19

  def IsMedallion(self) -> bool:
    return Item.CRYPT_1_MEDALLION <= self <= Item.CRYPT_8_MEDALLION

  def IsEquipment(self) -> bool:
    """Equipment is graded by its chest argument (1-4)."""
    return self in [Item.SWORD, Item.ARMOR, Item.SHIELD]

  def IsAreaLocked(self) -> bool:
    """Crystal balls and crypt keys only work in the area they belong to."""
    return self in [Item.CRYSTAL_BALL, Item.CRYPT_KEY]

  def GetGrant(self) -> "Gate | None":
    return ITEM_GRANTS.get(self)


ITEM_GRANTS = {
    Item.FIRE_WAND: Gate.FIRE_WAND,
    Item.SKY_BELL: Gate.BELL,
    Item.FALCON_SHOES: Gate.FALCON_SHOES,
    Item.RAINBOW_DROP: Gate.RAINBOW_DROP,
}

EQUIPMENT_GRADE_NAMES = {1: "Starter", 2: "Bronze", 3: "Steel", 4: "Strongest"}

AREA_NAMES = {
    0x00: "Land Sphere",
    0x01: "Subterranean Sphere",
    0x02: "Sea Sphere",
    0x03: "Sky Sphere",
    0x04: "Crypt 1",
    0x05: "Crypt 2",
    0x06: "Crypt 3",
    0x07: "Crypt 4",
    0x08: "Crypt 5",
    0x09: "Crypt 6",
    0x0A: "Crypt 7",
    0x0B: "Crypt 8",
    0x0C: "Land Sphere Village",
    0x0D: "Subterranean Sphere Village",
    0x0E: "Sea Sphere Village",
    0x0F: "Sky Sphere Village",
    0x10: "Dirth's Castle",
}


def GetItemName(item_id: int, arg: int) -> str:
  """Human readable name of a chest's contents."""
  try:
    item = Item(item_id)
  except ValueError:
    return f"Unknown (0x{item_id:02X})"
  if item == Item.BOMBS:
    return f"Bombs x{arg}"
  if item.IsEquipment():
    grade = EQUIPMENT_GRADE_NAMES.get(arg, "Unknown")
    return f"{grade} {item.name.title()}"
  return item.name.replace("_", " ").title()


def GetAreaName(area: int) -> str:
  return AREA_NAMES.get(area, f"Area 0x{area:02X}")


class RandoType(IntEnum):
  """Placement modes. The value is recorded in the integrity footer."""
  GLOBAL = 0
  CRYPT = 1
  NONE = 2

  @classmethod
  def FromFlag(cls, value: str) -> "RandoType":
    return {"global": cls.GLOBAL, "crypt": cls.CRYPT, "none": cls.NONE}[value]
