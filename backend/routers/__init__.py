# Router package
from . import auth, recipes, favorites
