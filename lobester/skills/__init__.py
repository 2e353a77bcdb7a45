"""Skills — installed units of content managed under the LobeSter home."""
