"""
Portal entry point.

Builds one client and store per content domain, loads the first page of
each, and reports cache statistics.
"""

import asyncio
from datetime import timedelta

from loguru import logger

from portal.clients import DOMAINS, create_client
from portal.log import setup_logging
from portal.services.transport import HttpTransport
from portal.settings import global_settings
from portal.stores import StoreOptions, create_store


async def main() -> None:
    """Warm every domain store once."""
    setup_logging(global_settings.log_level, global_settings.log_json)
    logger.info(f"Starting portal against {global_settings.api_base_url}...")

    transport = HttpTransport.from_settings(global_settings)
    options = StoreOptions(
        cache_ttl=timedelta(seconds=global_settings.store_cache_ttl_seconds)
    )
    clients = []

    try:
        for domain in DOMAINS:
            client = await create_client(
                domain,
                transport,
                sweep_interval=timedelta(
                    seconds=global_settings.cache_sweep_interval_seconds
                ),
                debug=global_settings.cache_debug,
            )
            clients.append(client)

            store = create_store(client, options)
            await store.fetch_items()
            if store.error:
                logger.warning(f"{domain}: {store.error}")
            else:
                logger.info(f"{domain}: {len(store.items)} of {store.total} items loaded")

        for client in clients:
            logger.info(f"{client.domain} cache: {client.cache.get_cache_stats().to_dict()}")

    finally:
        for client in clients:
            await client.dispose()
        await transport.close()
        logger.info("Portal stopped")


if __name__ == "__main__":
    asyncio.run(main())
