from emotichat.app.utils import setup_logger
from emotichat.app.main import create_app
from emotichat.pipeline.config import HOST, PORT

logger = setup_logger("emotichat")


def main():
    logger.info(f"[MAIN] Starting emotiChat on {HOST}:{PORT}")
    emotichat_app = create_app()
    emotichat_app.run(host=HOST, port=PORT, workers=1)


if __name__ == "__main__":
    main()
