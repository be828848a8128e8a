"""vaultsync core package.

Modules:
- client: catalog HTTP client
- hierarchy: collection tree -> library folders
- naming: PDF filenames and collision suffixes
- reconciler: one-way sync passes into the vault library
- coordinator: Watchdog-based storage watch, debounce and polling
- config: INI parsing and config object
"""
