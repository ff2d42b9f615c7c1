"""
Server entrypoint for the multiview HTTP API.

Starts uvicorn on `HOST`/`PORT` from `multiview.llm.provider_config` serving
`multiview.api.http_api:app`. Logging is configured here once for the process.
"""

import logging

import uvicorn

from multiview.llm.provider_config import HOST, PORT


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("multiview.api.http_api:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
