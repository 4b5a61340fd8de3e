# replicube examples/checkerboard.py
if (x + y + z) % 2 == 0:
    color = red
else:
    color = blue
color
