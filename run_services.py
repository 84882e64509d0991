import asyncio
import logging

import uvicorn

logger = logging.getLogger(__name__)


async def start_servers():
    # Access service
    config1 = uvicorn.Config(
        "auth_service.app.main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
    )
    server1 = uvicorn.Server(config1)

    # Contract lifecycle service
    config2 = uvicorn.Config(
        "clm_service.app.main:app",
        host="0.0.0.0",
        port=8002,
        reload=True,
    )
    server2 = uvicorn.Server(config2)

    # Run both servers concurrently
    await asyncio.gather(
        server1.serve(),
        server2.serve(),
    )

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        asyncio.run(start_servers())
    except KeyboardInterrupt:
        logger.info("Shutting down servers...")
