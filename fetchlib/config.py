from dataclasses import dataclass
from typing import List


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows Phone 10.0; Android 4.2.1; Microsoft; Lumia 640 XL LTE) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/42.0.2311.135 Mobile Safari/537.36 Edge/12.10166"
)

# Launch flags are fixed policy; only timeouts and buffer sizes are configurable.
CHROME_ARGUMENTS = (
    "--disable-extensions",
    "--disable-gpu",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--headless",
    "--disable-software-rasterizer",
    "--remote-allow-origins=*",
)


@dataclass(frozen=True)
class FetcherConfig:
    wait_timeout_seconds: float = 10.0
    max_total_buffer_size: int = 100_000_000
    max_resource_buffer_size: int = 10_000_000
    max_post_data_size: int = 1_000_000
    capture_timeout_seconds: float = 0.5


@dataclass(frozen=True)
class RunConfig:
    urls: List[str]
    concurrency: int = 4
    output_path: str = "fetched.jsonl"
    append: bool = False
    metrics_interval: float = 10.0
