"""
Mock TVmaze API responses for testing.

Reference: https://www.tvmaze.com/api
"""

# GET /search/shows?q=breaking
TVMAZE_SEARCH_RESPONSE = [
    {
        "score": 0.9,
        "show": {
            "id": 169,
            "name": "Breaking Bad",
            "premiered": "2008-01-20",
            "summary": "<p><b>Breaking Bad</b> follows protagonist Walter White.</p>",
            "image": {"medium": "https://static.tvmaze.com/169-m.jpg",
                      "original": "https://static.tvmaze.com/169.jpg"},
            "externals": {"tvrage": 18164, "thetvdb": 81189, "imdb": "tt0903747"},
        },
    },
    {
        "score": 0.6,
        "show": {
            "id": 40305,
            "name": "Breaking Bad Behind the Scenes",
            "premiered": "2010-06-01",
            "summary": None,
            "image": None,
            "externals": {"tvrage": None, "thetvdb": None, "imdb": "tt9999999"},
        },
    },
]

# GET /shows/169?embed=cast
TVMAZE_SHOW_RESPONSE = {
    "id": 169,
    "name": "Breaking Bad",
    "language": "English",
    "genres": ["Drama", "Crime", "Thriller"],
    "status": "Ended",
    "runtime": 60,
    "premiered": "2008-01-20",
    "rating": {"average": 9.2},
    "network": {"id": 20, "name": "AMC", "country": {"name": "United States", "code": "US"}},
    "webChannel": None,
    "externals": {"tvrage": 18164, "thetvdb": 81189, "imdb": "tt0903747"},
    "summary": "<p><b>Breaking Bad</b> follows protagonist Walter White &amp; his partner.</p>",
    "_embedded": {
        "cast": [
            {
                "person": {"id": 14245, "name": "Bryan Cranston",
                           "image": {"medium": "https://static.tvmaze.com/p/14245.jpg"}},
                "character": {"id": 37, "name": "Walter White"},
            },
            {
                "person": {"id": 18917, "name": "Aaron Paul", "image": None},
                "character": {"id": 38, "name": "Jesse Pinkman"},
            },
        ]
    },
}

# GET /shows/169/images
TVMAZE_IMAGES_RESPONSE = [
    {
        "id": 1,
        "type": "poster",
        "main": True,
        "resolutions": {"original": {"url": "https://static.tvmaze.com/169-poster.jpg",
                                     "width": 680, "height": 1000}},
    },
    {
        "id": 2,
        "type": "background",
        "main": False,
        "resolutions": {"original": {"url": "https://static.tvmaze.com/169-bg.jpg",
                                     "width": 1920, "height": 1080}},
    },
    {
        "id": 3,
        "type": "typography",
        "main": False,
        "resolutions": {"original": {"url": "https://static.tvmaze.com/169-typo.jpg"}},
    },
]

# GET /shows/169/episodes
TVMAZE_EPISODES_RESPONSE = [
    {
        "id": 12192,
        "name": "Pilot",
        "season": 1,
        "number": 1,
        "airdate": "2008-01-20",
        "runtime": 60,
        "rating": {"average": 8.3},
        "image": {"original": "https://static.tvmaze.com/ep-12192.jpg"},
        "summary": "<p>Walter White, a struggling chemistry teacher...</p>",
    },
    {
        "id": 12193,
        "name": "Cat's in the Bag...",
        "season": 1,
        "number": 2,
        "airdate": "2008-01-27",
        "runtime": 60,
        "rating": {"average": None},
        "image": None,
        "summary": "",
    },
    {
        "id": 12194,
        "name": "Special",
        "season": 1,
        "number": None,
        "airdate": "2008-02-01",
        "runtime": None,
        "rating": {},
        "image": None,
        "summary": None,
    },
]
