# replicube examples/uniform.py --mode uniform
{"R": 0.9, "G": 0.6, "B": 0.1, "A": 1.0}
