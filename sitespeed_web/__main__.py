import logging

from sitespeed_web.app_factory import create_app, create_reaper

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = create_app()
    reaper = create_reaper(app.config["SETTINGS"])
    reaper.start()
    try:
        app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"], use_reloader=False)
    finally:
        reaper.stop()
