from .dialog_state import DialogGeometry, RESIZE_DIRECTIONS, load_geometry, save_geometry
