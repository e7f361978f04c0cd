# tests/fakes/tmdb_stub.py

# Canned TMDB payloads so integrations and services run without the network.

FIGHT_CLUB = {
    "id": 550,
    "imdb_id": "tt0137523",
    "title": "Fight Club",
    "release_date": "1999-10-15",
    "runtime": 139,
    "poster_path": "/pB8BM7pdSp6B6Ih7QZ4DrQ3PmJK.jpg",
    "overview": "A ticking-time-bomb insomniac and a slippery soap salesman...",
    "genres": [{"id": 18, "name": "Drama"}, {"id": 53, "name": "Thriller"}],
    "vote_average": 8.4,
    "vote_count": 29000,
    "credits": {
        "cast": [
            {"name": "Edward Norton"},
            {"name": "Brad Pitt"},
            {"name": "Helena Bonham Carter"},
            {"name": "Meat Loaf"},
            {"name": "Jared Leto"},
            {"name": "Zach Grenier"},
        ],
        "crew": [
            {"name": "Art Linson", "job": "Producer"},
            {"name": "David Fincher", "job": "Director"},
        ],
    },
    "external_ids": {"imdb_id": "tt0137523"},
}

BREAKING_BAD = {
    "id": 1396,
    "name": "Breaking Bad",
    "first_air_date": "2008-01-20",
    "episode_run_time": [47, 45],
    "poster_path": "/ggFHVNu6YYI5L9pCfOacjizRGt.jpg",
    "overview": "Walter White, a chemistry teacher...",
    "genres": [{"id": 18, "name": "Drama"}, {"id": 80, "name": "Crime"}],
    "vote_average": 8.9,
    "vote_count": 14000,
    "created_by": [{"name": "Vince Gilligan"}],
    "credits": {
        "cast": [{"name": "Bryan Cranston"}, {"name": "Aaron Paul"}],
        "crew": [{"name": "Mark Johnson", "job": "Producer"}],
    },
    "external_ids": {"imdb_id": "tt0903747"},
}

DETAILS = {
    "/movie/550": FIGHT_CLUB,
    "/tv/1396": BREAKING_BAD,
}

SEARCH_MULTI = {
    "page": 1,
    "results": [
        {"id": 550, "media_type": "movie", "title": "Fight Club", "release_date": "1999-10-15", "vote_average": 8.4},
        {"id": 1396, "media_type": "tv", "name": "Breaking Bad", "first_air_date": "2008-01-20"},
        {"id": 287, "media_type": "person", "name": "Brad Pitt"},
    ],
}
