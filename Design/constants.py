# Centralized constants and defaults for the space design engine

VERSION = "v1"

# Isometric projection defaults (screen pixels per tile)
TILE_WIDTH_DEFAULT = 40.0
TILE_HEIGHT_DEFAULT = 20.0
WALL_HEIGHT_DEFAULT = 3.0

# Chunk grid
CHUNK_SIZE = 2

# History
HISTORY_LIMIT = 30

# Persistence namespaces
SANDBOX_NAMESPACE = "test"
BLUEPRINT_NAMESPACE = "blueprint"
PERSIST_DEBOUNCE_S = 0.5

# Blueprints
BLUEPRINT_COPY_SUFFIX = " (copy)"
BLUEPRINT_PRICE_DEFAULT = 100
