"""Document titles and the seed content written when a document is missing."""

LISTS_DOC = "[DATABASE] Lists"
BLACKLISTS_DOC = "[DATABASE] Blacklists"
ROLES_DOC = "[DATABASE] Role Definitions"
ALIASES_DOC = "[DATABASE] Aliases"
CANDIDATES_DOC = "[DATABASE] Candidates"

REGISTRY_DOC = "[ENTITIES] Registry"
ASSOCIATIONS_DOC = "[ENTITIES] Associations"
NGRAM_DOC = "[ENTITIES] NGram Model"
RELATIONSHIPS_DOC = "[ENTITIES] Relationships"
HISTORY_DOC = "[ENTITIES] Turn History"

DATABASE_DOCS = (LISTS_DOC, BLACKLISTS_DOC, ROLES_DOC, ALIASES_DOC, CANDIDATES_DOC)
ENTITY_DOCS = (REGISTRY_DOC, ASSOCIATIONS_DOC, NGRAM_DOC, RELATIONSHIPS_DOC, HISTORY_DOC)

DEFAULT_LISTS = """{# List Database
// Central storage for all word/phrase lists
// These lists are used to build entity detection patterns

## Common Words
- the
- a
- an
- and
- or
- but
- in
- on
- at
- to
- for

## Minor Words
- of
- with
- by
- from
- as
- up

## Non Role Words
- thing
- way
- time
- place
- person

## Dialogue Verbs
- said
- spoke
- replied
- answered
- asked
- exclaimed
- whispered
- shouted
- muttered
- declared
- announced
- questioned

## Action Verbs
- walked
- ran
- stood
- sat
- smiled
- frowned
- laughed
- cried
- jumped
- turned
- looked
- nodded

## Arrival Verbs
- arrived
- reached
- entered
- approached
- came to

## Departure Verbs
- left
- departed
- exited
- fled
- escaped

## Place Types
- City
- Town
- Village
- Kingdom
- Empire
- Province
- Castle
- Tower
- Temple
- Forest
- Mountain
- River
- Lake
- Dungeon
- Cave
- Valley

## Object Types
- Sword
- Blade
- Axe
- Bow
- Staff
- Shield
- Ring
- Amulet
- Armor
- Crystal
- Potion
- Scroll
- Book
- Key

## Faction Types
- Guild
- Order
- Brotherhood
- Clan
- House
- Family
- Company
- Corporation
- Syndicate

## Noble Titles
- Lord
- Lady
- Sir
- King
- Queen
- Prince
- Princess
- Duke
- Duchess
- Baron
- Baroness
- Count
- Countess

## Metadata
Last Update: 0
Total Words: 108
}"""

DEFAULT_BLACKLISTS = """{# Blacklist Database
// Dynamically learned non-entities and common words

## Static Blacklist
// Always considered non-entities
the: category=article
a: category=article
an: category=article
and: category=conjunction
or: category=conjunction
but: category=conjunction
it: category=pronoun
he: category=pronoun
she: category=pronoun
they: category=pronoun

## Metadata
Last Update: 0
Total Entries: 10
}"""

DEFAULT_ROLES = """{# Role Definitions
// Valid roles and their synonyms

## Combat Roles
warrior: fighter, soldier, combatant, champion
mage: wizard, sorcerer, magician, enchanter, spellcaster
healer: cleric, priest, medic, doctor
knight: paladin, cavalier, templar

## Social Roles
leader: commander, captain, chief, boss, head
merchant: trader, vendor, seller, shopkeeper, dealer
noble: lord, lady, duke, duchess, baron, baroness

## Rogue Roles
thief: rogue, burglar, pickpocket, bandit
assassin: killer, slayer, shadow, blade
scout: ranger, tracker, explorer, pathfinder

## Metadata
Last Update: 0
Total Roles: 10
}"""

DEFAULT_ALIASES = """{# Alias Database
// Known aliases and equivalences

## Character Aliases
Kirito: The Black Swordsman, Black Swordsman
Asuna: Lightning Flash, The Flash
Klein: Fuurinkazan Leader

## Location Aliases
Town of Beginnings: Starting City, First Town
Aincrad: The Floating Castle, Steel Castle

## Item Aliases
Elucidator: The Black Sword
Dark Repulser: The White Sword

## Metadata
Last Update: 0
Total Aliases: 7
}"""

DEFAULT_CANDIDATES = """{# Candidate Database
// Tracks potential new words for each list
// Words are promoted to lists when confidence threshold is met

## Metadata
Last Update: 0
Promotion Threshold: 0.75
Min Occurrences: 4
Min Contexts: 3
}"""

DEFAULT_DOCUMENTS: dict[str, str] = {
    LISTS_DOC: DEFAULT_LISTS,
    BLACKLISTS_DOC: DEFAULT_BLACKLISTS,
    ROLES_DOC: DEFAULT_ROLES,
    ALIASES_DOC: DEFAULT_ALIASES,
    CANDIDATES_DOC: DEFAULT_CANDIDATES,
}
