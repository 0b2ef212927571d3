"""Front matter parsing and fragment splicing."""
