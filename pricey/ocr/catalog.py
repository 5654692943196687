"""Reference catalog of known stores and their aliases."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .config import tomllib


@dataclass(frozen=True)
class StoreEntry:
    name: str
    aliases: frozenset[str] = field(default_factory=frozenset)

    @property
    def all_names(self) -> frozenset[str]:
        return self.aliases | {self.name}


_DEFAULT_STORES: list[tuple[str, list[str]]] = [
    # US chains
    ("Walmart", ["walmart", "wal mart", "walmart supercenter", "neighborhood market"]),
    ("Target", ["target", "target corp", "supertarget"]),
    ("Costco", ["costco", "costco wholesale"]),
    ("Kroger", ["kroger", "kroger co"]),
    ("Safeway", ["safeway"]),
    ("Whole Foods", ["whole foods", "whole foods market", "wfm"]),
    ("Trader Joe's", ["trader joe's", "trader joes", "tj's"]),
    ("CVS", ["cvs", "cvs pharmacy"]),
    ("Walgreens", ["walgreens"]),
    ("Rite Aid", ["rite aid"]),
    ("Home Depot", ["home depot", "the home depot"]),
    ("Lowe's", ["lowe's", "lowes"]),
    ("Best Buy", ["best buy"]),
    ("Apple Store", ["apple store", "apple retail"]),
    ("Macy's", ["macy's", "macys"]),
    ("Nordstrom", ["nordstrom"]),
    ("Kohl's", ["kohl's", "kohls"]),
    ("Sam's Club", ["sam's club", "sams club"]),
    ("BJ's", ["bj's wholesale", "bj's"]),
    ("Amazon", ["amazon", "amazon.com"]),
    ("7-Eleven", ["7-eleven", "7 eleven"]),
    ("Starbucks", ["starbucks"]),
    # Austrian chains
    ("Billa", ["billa", "billa plus"]),
    ("Spar", ["spar", "interspar", "eurospar", "spar gourmet"]),
    ("Hofer", ["hofer", "hofer kg"]),
    ("Lidl", ["lidl", "lidl österreich"]),
    ("Penny", ["penny", "penny markt"]),
    ("MPreis", ["mpreis", "m-preis"]),
    ("Merkur", ["merkur", "merkur markt"]),
    ("Unimarkt", ["unimarkt"]),
    ("Adeg", ["adeg", "adeg markt"]),
    ("Nah & Frisch", ["nah & frisch", "nah und frisch"]),
    ("dm", ["dm drogerie markt"]),
    ("Müller", ["müller", "mueller", "müller drogerie"]),
    ("Bipa", ["bipa"]),
    ("Bauhaus", ["bauhaus"]),
    ("OBI", ["obi baumarkt"]),
    ("Hornbach", ["hornbach"]),
    ("MediaMarkt", ["mediamarkt", "media markt"]),
    ("Saturn", ["saturn"]),
    ("Hartlauer", ["hartlauer"]),
    ("OMV", ["omv", "omv tankstelle"]),
    ("BP", ["bp tankstelle"]),
    ("Shell", ["shell", "shell tankstelle"]),
]


class StoreCatalog:
    """Read-only lookup of canonical store names.

    Safe to share between workers; nothing mutates it after construction.
    """

    def __init__(self, entries: list[StoreEntry] | None = None) -> None:
        self._entries: tuple[StoreEntry, ...] = tuple(
            entries if entries is not None else default_entries()
        )

    def __iter__(self):
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str) -> StoreEntry | None:
        lowered = name.lower()
        for entry in self._entries:
            if entry.name.lower() == lowered:
                return entry
        return None

    @classmethod
    def from_toml(cls, path: str | Path, *, include_defaults: bool = True) -> StoreCatalog:
        """Load extra stores from a TOML file with ``[[stores]]`` tables.

        Aliases for a store that already exists are merged into it.
        """
        with open(Path(path).expanduser(), "rb") as f:
            raw = tomllib.load(f)

        merged: dict[str, set[str]] = {}
        order: list[str] = []
        if include_defaults:
            for entry in default_entries():
                merged[entry.name] = set(entry.aliases)
                order.append(entry.name)

        for store in raw.get("stores", []):
            name = store.get("name", "").strip()
            if not name:
                continue
            aliases = {a.strip().lower() for a in store.get("aliases", []) if a.strip()}
            if name not in merged:
                merged[name] = set()
                order.append(name)
            merged[name] |= aliases

        return cls([StoreEntry(name=n, aliases=frozenset(merged[n])) for n in order])


def default_entries() -> list[StoreEntry]:
    return [
        StoreEntry(name=name, aliases=frozenset(aliases))
        for name, aliases in _DEFAULT_STORES
    ]
