# handvision

A small image-recognition toolkit built on numpy, scipy and Pillow. It covers:

- **Basic image operations**: fixed-level thresholding, median filtering, 3×3 sharpening, painting point sets in random colours and picking out their border pixels.
- **Colour barcode decoding**: find the three circular finder marks, straighten the code and read its 47×47 grid of colour cells as text.
- **Gesture classification**: take the largest contour of a hand image, describe it with elliptic Fourier descriptors and classify it with a small multi-layer perceptron.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install .[test]
pytest
```

## Command line

Decode every `.jpg` colour barcode in a directory; each decoded message is printed, and images that cannot be read or decoded are reported on standard error:

```
handvision-barcode codes/
```

Extract gesture features from the `.png` images of a directory into a feature file (`Glass.data` unless `-output` says otherwise; `-seed` fixes the shuffled image order):

```
handvision-gesture -extra dataset_full
```

Train a classifier on a feature file and save it as JSON, or load a saved one and report its recognition rate on the file:

```
handvision-gesture -save model.json -data Glass.data
handvision-gesture -load model.json -data Glass.data
```

Gesture file names carry their class as the seventh character of the name (for example `hand1_a_bot_seg_1.png`). Classes are `0`–`9` followed by `a`–`z`.

## Library use

```python
import numpy as np
from handvision.binarise import binarise
from handvision.filters import median_filter
from handvision.colouring import color_blobs, find_borders

gray = np.zeros((40, 40), dtype=np.uint8)
gray[5:15, 5:15] = 200

mask = binarise(median_filter(gray, 3, 3), 75)
square = [(r, c) for r in range(5, 13) for c in range(5, 13)]
painted = color_blobs(mask, [square], rng=1)
edges = find_borders(mask, [square])
```

Modules and their main entry points:

- `handvision.binarise.binarise`: pixels above the threshold (75 by default) become 255, the rest 0.
- `handvision.filters.median_filter` and `handvision.filters.sharpen_edges`.
- `handvision.imagedir.list_files`, `load_image` and `read_images`: colour images load in blue, green, red channel order.
- `handvision.colouring.color_blobs` and `find_borders`: work on lists of `(row, column)` points.
- `handvision.geometry.Vector2D`, `Triangle`, `find_right_angle` and `missing_corner`.
- `handvision.barcode.decode_image`, `decode_grid`, `find_circles`, `rectify`, `perspective_matrix`, `warp_perspective` and `resize`.
- `handvision.gesture.largest_contour`, `elliptic_fourier_descriptors`, `read_gesture_image`, `class_label` and `list_png_files`.
- `handvision.training.MLP`, `read_dataset`, `evaluate`, `build_classifier` and `extract_features`.

## What it does not do

- There is no connected-component detector: `color_blobs` and `find_borders` take point sets you supply, and nothing in the package finds or counts blobs in a thresholded image for you.
- There is no object-labelling command and no live camera view; all commands work on image files in a directory.
- Classifiers are stored in the package's own JSON format and are not exchangeable with other tools.