"""Ocean monument locator and sponge-room counter."""
