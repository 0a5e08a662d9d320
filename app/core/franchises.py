"""Static movie lookup tables.

Plain immutable maps, searched top to bottom. Order matters: franchise
keys are matched by substring, so longer, more specific keys come first.
"""

from types import MappingProxyType

# ── Sequels per franchise base name ──────────────────────────────────

SEQUEL_MAP: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    "wonder woman": ("Wonder Woman 1984", "Wonder Woman: 1984"),
    "sherlock holmes": ("Sherlock Holmes: A Game of Shadows",),
    "mission impossible": (
        "Mission: Impossible - Dead Reckoning Part One",
        "Mission: Impossible - Fallout",
    ),
    "top gun": ("Top Gun: Maverick",),
    "avatar": ("Avatar: The Way of Water",),
    "batman begins": ("The Dark Knight", "The Dark Knight Rises"),
    "the dark knight": ("The Dark Knight Rises",),
    "batman": ("Batman Returns", "Batman Forever", "The Dark Knight"),
    "spider-man": ("Spider-Man 2", "Spider-Man 3", "Spider-Man: No Way Home"),
    "iron man": ("Iron Man 2", "Iron Man 3"),
    "thor": ("Thor: The Dark World", "Thor: Ragnarok", "Thor: Love and Thunder"),
    "captain america": ("Captain America: The Winter Soldier", "Captain America: Civil War"),
    "guardians of the galaxy": ("Guardians of the Galaxy Vol. 2", "Guardians of the Galaxy Vol. 3"),
    "toy story": ("Toy Story 2", "Toy Story 3", "Toy Story 4"),
    "john wick": ("John Wick: Chapter 2", "John Wick: Chapter 3", "John Wick: Chapter 4"),
    "fast and furious": ("2 Fast 2 Furious", "Fast & Furious", "Fast Five", "Fast X"),
    "the matrix": ("The Matrix Reloaded", "The Matrix Revolutions", "The Matrix Resurrections"),
    "terminator": ("Terminator 2: Judgment Day", "Terminator 3: Rise of the Machines"),
    "alien": ("Aliens", "Alien 3", "Alien: Resurrection"),
    "star wars": ("The Empire Strikes Back", "Return of the Jedi"),
    "back to the future": ("Back to the Future Part II", "Back to the Future Part III"),
    "the godfather": ("The Godfather Part II", "The Godfather Part III"),
    "knives out": ("Glass Onion: A Knives Out Mystery", "Glass Onion"),
})

# ── Latest entries tried as exact catalog titles ─────────────────────

FRANCHISE_LATEST: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    "wonder woman": ("Wonder Woman 1984", "Wonder Woman: 1984"),
    "mission impossible": (
        "Mission: Impossible - Dead Reckoning Part One",
        "Mission: Impossible - Fallout",
        "Mission: Impossible - Rogue Nation",
    ),
    "top gun": ("Top Gun: Maverick",),
    "batman": ("The Batman", "The Dark Knight Rises", "Batman Returns"),
    "spider-man": ("Spider-Man: No Way Home", "Spider-Man: Far From Home", "Spider-Man 2"),
    "fast": ("Fast X", "Fast & Furious Presents: Hobbs & Shaw"),
    "john wick": ("John Wick: Chapter 4", "John Wick: Chapter 3", "John Wick: Chapter 2"),
    "avatar": SEQUEL_MAP["avatar"],
    "iron man": SEQUEL_MAP["iron man"],
    "thor": SEQUEL_MAP["thor"],
    "captain america": SEQUEL_MAP["captain america"],
    "guardians of the galaxy": SEQUEL_MAP["guardians of the galaxy"],
    "toy story": SEQUEL_MAP["toy story"],
    "the matrix": SEQUEL_MAP["the matrix"],
    "terminator": SEQUEL_MAP["terminator"],
    "alien": SEQUEL_MAP["alien"],
    "star wars": SEQUEL_MAP["star wars"],
    "back to the future": SEQUEL_MAP["back to the future"],
    "the godfather": SEQUEL_MAP["the godfather"],
    # US original and the 2017 Korean film
    "taxi driver": ("Taxi Driver", "A Taxi Driver"),
})

# Loose phrasings that map onto one exact catalog title
SPECIFIC_TITLES: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    "wonder woman 1984": ("Wonder Woman 1984", "Wonder Woman: 1984"),
    "top gun maverick": ("Top Gun: Maverick",),
    "batman begins": ("Batman Begins",),
    "the dark knight": ("The Dark Knight",),
    "dark knight rises": ("The Dark Knight Rises",),
    "spider-man no way home": ("Spider-Man: No Way Home",),
    "mission impossible fallout": ("Mission: Impossible - Fallout",),
    "john wick 4": ("John Wick: Chapter 4",),
    "avatar 2": ("Avatar: The Way of Water",),
})

# Korean titles whose English name collides with a better-known film
KNOWN_KOREAN_TITLES: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    "taxi driver": ("A Taxi Driver", "Taxi Driver 2017", "Taeksi Woonjunsa"),
    "oldboy": ("Oldboy", "Oldboy 2003"),
    "parasite": ("Parasite", "Parasite 2019", "Gisaengchung"),
})

SEQUEL_SUFFIXES: tuple[str, ...] = (
    " 2",
    " II",
    " Part 2",
    " Part II",
    ": Part Two",
    " Returns",
    " Rises",
    " Reloaded",
    " Revenge",
    " Strikes Back",
    " Forever",
)

COUNTRIES: tuple[str, ...] = ("korean", "japanese", "french", "italian", "spanish", "chinese")

# ── Genre examples for the offline recommendation template ───────────

GENRE_EXAMPLES: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    "Action": ("John Wick", "Mad Max: Fury Road", "The Dark Knight", "Terminator 2"),
    "Drama": ("The Shawshank Redemption", "Forrest Gump", "Goodfellas", "Casablanca"),
    "Comedy": ("The Grand Budapest Hotel", "Parasite", "Superbad", "Groundhog Day"),
    "Thriller": ("Gone Girl", "Zodiac", "Se7en", "The Silence of the Lambs"),
    "Horror": ("Hereditary", "The Conjuring", "Get Out", "A Quiet Place"),
    "Sci-Fi": ("Blade Runner 2049", "Inception", "Interstellar", "The Matrix"),
    "Fantasy": ("The Lord of the Rings", "Pan's Labyrinth", "The Shape of Water", "Big Fish"),
    "Romance": ("Before Sunset", "Eternal Sunshine", "Her", "La La Land"),
    "Crime": ("Pulp Fiction", "The Godfather", "Fargo", "No Country for Old Men"),
    "Animation": ("Spider-Man: Into the Spider-Verse", "WALL-E", "Your Name", "Spirited Away"),
    "Adventure": ("Indiana Jones", "Jurassic Park", "Pirates of the Caribbean", "Guardians of the Galaxy"),
    "War": ("Saving Private Ryan", "Apocalypse Now", "Dunkirk", "1917"),
    "Documentary": ("Free Solo", "Won't You Be My Neighbor?", "The Act of Killing", "March of the Penguins"),
    "Biography": ("The Social Network", "Steve Jobs", "Malcolm X", "Gandhi"),
    "Mystery": ("Knives Out", "The Prestige", "Shutter Island", "Prisoners"),
})

DEFAULT_EXAMPLES: tuple[str, ...] = ("The Dark Knight", "Inception", "Pulp Fiction")


def find_franchise(
    base_title: str,
    table: MappingProxyType[str, tuple[str, ...]] = SEQUEL_MAP,
) -> tuple[str, tuple[str, ...]] | None:
    """Return the first (key, titles) entry whose key overlaps ``base_title``.

    A key matches when it equals the lowered base title or either string
    contains the other. An empty base title never matches.
    """
    base = base_title.lower().strip()
    if not base:
        return None
    for key, titles in table.items():
        if base == key or key in base or base in key:
            return key, titles
    return None


def examples_for_genre(genre: str, limit: int = 3) -> list[str]:
    """Example titles for a genre string like "Action, Sci-Fi"."""
    lowered = genre.lower()
    for key, titles in GENRE_EXAMPLES.items():
        key_lower = key.lower()
        if key_lower in lowered or lowered in key_lower:
            return list(titles[:limit])
    return list(DEFAULT_EXAMPLES[:limit])
