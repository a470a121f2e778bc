import json
import logging
from trademe_crawler.aggregator import write_output
from trademe_crawler.config import CRAWL_CONFIG
from trademe_crawler.fetch import Fetcher
from trademe_crawler.pipeline import crawl

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def lambda_handler(event, context):
    logger.info("Trade Me crawl starting")
    event = event or {}

    seed_urls = event.get("seed_urls") or CRAWL_CONFIG["seed_urls"]
    worker_count = int(event.get("worker_count", CRAWL_CONFIG["worker_count"]))
    output_path = event.get("output_path", CRAWL_CONFIG["output_path"])

    # Step 1: Crawl search pages and listings
    result = crawl(seed_urls, fetcher=Fetcher(), worker_count=worker_count)
    logger.info(
        f"Visited {result.search_pages} search pages, "
        f"dispatched {result.listings} listings, "
        f"extracted {len(result.records)} records"
    )

    # Step 2: Write the aggregated records
    path = write_output(result.records, output_path)

    return {
        "statusCode": 200,
        "body": json.dumps(
            {
                "search_pages": result.search_pages,
                "listings": result.listings,
                "records": len(result.records),
                "output_path": str(path),
            }
        ),
    }


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(threadName)s - %(levelname)s - %(message)s",
    )
    print(lambda_handler({}, None)["body"])
