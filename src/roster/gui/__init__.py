"""Qt layer: background dispatch, controllers and the roster facade."""
