import logging

from spider_bookmarks.web.server import create_app

logger = logging.getLogger(__name__)

app = create_app()

if __name__ == '__main__':
    logger.info(f"Starting SpiderBookmarks on port {app.config['PORT']}")
    app.run(host='0.0.0.0', port=app.config['PORT'], debug=app.config['DEBUG'])
