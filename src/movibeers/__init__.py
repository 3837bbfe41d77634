"""MoviBeers social core: activity tracking, feeds, follows and notifications."""
