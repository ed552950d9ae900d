import reflex as rx

from app.utils.db import build_database_url

config = rx.Config(
    app_name="app",
    db_url=build_database_url(),
    api_url="http://localhost:8000",
    disable_plugins=["reflex.plugins.sitemap.SitemapPlugin"],
    telemetry_enabled=False,
)
