# replicube examples/sphere.py
# Cells inside a sphere are shaded by distance, the rest are hidden.
r = math.sqrt(x * x + y * y + z * z)
if r > 2.2:
    color = transparent
else:
    t = r / 2.2
    color = rgb(1 - t, 0.3, t)
color
