import os

DEFAULT_SEED_URLS = [
    "http://www.trademe.co.nz/browse/categoryattributesearchresults.aspx?cid=5748&search=1&134=1&135=7&59=20000%2c40000&rptpath=350-5748-&nofilters=1&originalsidebar=1&key=966459328&page=1&sort_order=prop_default",
    "http://www.trademe.co.nz/browse/categoryattributesearchresults.aspx?cid=5748&search=1&134=1&135=7&59=20000%2c40000&rptpath=350-5748-&nofilters=1&originalsidebar=1&key=966459328&page=2&sort_order=prop_default",
    "http://www.trademe.co.nz/browse/categoryattributesearchresults.aspx?cid=5748&search=1&134=1&135=7&59=20000%2c40000&rptpath=350-5748-&nofilters=1&originalsidebar=1&key=966459328&page=3&sort_order=prop_default",
]


def _seed_urls() -> list[str]:
    raw = os.environ.get("SEED_URLS", "")
    urls = [url.strip() for url in raw.split(",") if url.strip()]
    return urls or list(DEFAULT_SEED_URLS)


CRAWL_CONFIG = {
    "seed_urls": _seed_urls(),
    "worker_count": int(os.environ.get("WORKER_COUNT", "5")),
    "channel_size": int(os.environ.get("CHANNEL_SIZE", "10")),
    "fetch_timeout": float(os.environ.get("FETCH_TIMEOUT", "30")),
    "output_path": os.environ.get("OUTPUT_PATH", "properties.json"),
    "user_agent": os.environ.get("USER_AGENT", "TradeMeCrawler/1.0 (listing extractor)"),
}
