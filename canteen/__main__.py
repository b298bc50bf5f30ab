"""
Run the API with uvicorn: python -m canteen
"""

import uvicorn

from .config.settings import settings


def main():
    uvicorn.run("canteen.app:app", host=settings.host, port=settings.port,
                log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
