import reflex as rx

from app.api.operations import LedgerOperations
from app.api.routes import create_api

# El front end de la tienda y del panel consume la API montada aqui.
app = rx.App(api_transformer=create_api(LedgerOperations()))
