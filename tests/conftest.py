import os

os.environ.setdefault("WORKER_COUNT", "3")
os.environ.setdefault("CHANNEL_SIZE", "4")
os.environ.setdefault("FETCH_TIMEOUT", "5")
os.environ.setdefault("OUTPUT_PATH", "test-properties.json")
os.environ.setdefault("SEED_URLS", "https://www.trademe.co.nz/browse/page-1.aspx")
