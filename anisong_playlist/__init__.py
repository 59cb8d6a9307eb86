"""
anisong-playlist: Turn the theme songs of the anime you watched into playlists.

Workflow:
    1. Mark anime as watched or unwatched (per broadcast quarter)
    2. Match each theme song of the watched anime of a quarter to a track
       on the music service, one song at a time:
        - Titles are normalized (case, full-width forms, separators,
          quotation brackets) before comparison
        - A song with exactly one exact candidate is matched automatically
        - Otherwise the user selects a candidate, skips, or goes back
    3. Save the result as a draft (one per quarter), edit it later
    4. Create a playlist from one draft, or one merged playlist from several

Modules:
    core/       - Configuration, logging, exceptions, storage, drafts, statuses
    matching/   - Normalizer, classifier, matching session
    music/      - Music services (mock, Spotify)
    playlist/   - Anime data, quarter helpers, playlist creation
    utils/      - Display formatting helpers
    cli.py      - Command-line interface

Usage:
    Command Line:
        anisong status a1 watched
        anisong quarters
        anisong match 2024q1
        anisong create 2024q1

    Python API:
        from anisong_playlist.matching import MatchingSession
        from anisong_playlist.music import MockMusicService

        session = MatchingSession(entries, MockMusicService())
        session.start()

Dependencies:
    - spotipy: Spotify API client
    - rapidfuzz: Fuzzy similarity shown next to candidates
    - click / rich-click: CLI framework and colors
    - rich: Progress bar
    - tqdm: Log output that does not break progress bars
    - pyyaml: Configuration file parsing
"""

__version__ = "0.1.0"
__author__ = "anisong-playlist"
__license__ = "MIT"
