"""Config synthesis — merge managed skills into a base config and apply presets.

- merge: pure base-config + skills reconciliation
- adapters: ecosystem-specific loadout adapters and their registry
- apply: preset apply orchestration with run tracking
"""
