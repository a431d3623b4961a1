"""Gesture classifier: feature files, a multi-layer perceptron and its evaluation."""

import argparse
import json
import random
import sys

import numpy as np

from .gesture import (
    class_label,
    elliptic_fourier_descriptors,
    largest_contour,
    list_png_files,
    read_gesture_image,
)

CLASS_COUNT = 36
FEATURE_COUNT = 19
HIDDEN_LAYERS = (100, 100)
DEFAULT_MAX_ITER = 300
DEFAULT_LEARNING_RATE = 0.001
MOMENTUM = 0.1
DEFAULT_DATA_FILE = "Glass.data"
CONTOUR_THRESHOLD = 10
ERODE_ITERATIONS = 1
LABEL_BASE = ord("0")
LETTER_BASE = ord("a")

# Symmetric sigmoid: f(x) = BETA * (1 - exp(-ALPHA x)) / (1 + exp(-ALPHA x)).
_ALPHA = 2.0 / 3.0
_BETA = 1.7159
_TARGET = 0.95


def _activate(values):
    return _BETA * np.tanh(values * (_ALPHA / 2.0))


def _slope(outputs):
    return (_ALPHA / 2.0) * (_BETA - outputs * outputs / _BETA)


class MLP:
    """A fully connected perceptron with symmetric sigmoid units.

    Inputs are standardised per column with the statistics of the training
    data.  Training is per-sample back-propagation with momentum on the
    squared error; a prediction is the index of the strongest output.
    """

    def __init__(self, layer_sizes, seed=None):
        sizes = tuple(int(size) for size in layer_sizes)
        if len(sizes) < 2:
            raise ValueError("an MLP needs at least an input and an output layer")
        if any(size < 1 for size in sizes):
            raise ValueError("layer sizes must be positive")
        self.layer_sizes = sizes
        self._rng = np.random.default_rng(seed)
        self._weights = [
            self._rng.uniform(-1.0, 1.0, size=(n_in + 1, n_out)) / np.sqrt(n_in)
            for n_in, n_out in zip(sizes, sizes[1:])
        ]
        self._input_mean = np.zeros(sizes[0])
        self._input_scale = np.ones(sizes[0])

    def _check_inputs(self, data):
        inputs = np.asarray(data, dtype=np.float64)
        if inputs.ndim != 2 or inputs.shape[1] != self.layer_sizes[0]:
            raise ValueError(f"expected samples of {self.layer_sizes[0]} values")
        return inputs

    def _layers(self, batch):
        outputs = [batch]
        current = batch
        for weights in self._weights:
            current = _activate(current @ weights[:-1] + weights[-1])
            outputs.append(current)
        return outputs

    def train(self, data, targets, max_iter=DEFAULT_MAX_ITER, learning_rate=DEFAULT_LEARNING_RATE):
        """Fit the network to ``targets`` (one row per sample, 0 to 1 per output).

        Runs ``max_iter`` passes over the samples in random order and returns
        the model itself.
        """
        inputs = self._check_inputs(data)
        goals = np.asarray(targets, dtype=np.float64)
        count = inputs.shape[0]
        if count == 0:
            raise ValueError("no training samples")
        if goals.shape != (count, self.layer_sizes[-1]):
            raise ValueError(f"expected targets of shape {(count, self.layer_sizes[-1])}")
        if max_iter < 0:
            raise ValueError("max_iter must not be negative")

        mean = inputs.mean(axis=0)
        spread = inputs.std(axis=0)
        spread[spread == 0] = 1.0
        self._input_mean, self._input_scale = mean, 1.0 / spread
        scaled = (inputs - mean) * self._input_scale
        goals = goals * (2 * _TARGET) - _TARGET

        velocity = [np.zeros_like(weights) for weights in self._weights]
        for _ in range(max_iter):
            for index in self._rng.permutation(count):
                activations = self._layers(scaled[index:index + 1])
                delta = (activations[-1] - goals[index:index + 1]) * _slope(activations[-1])
                for layer in reversed(range(len(self._weights))):
                    weights = self._weights[layer]
                    gradient = np.vstack([activations[layer].T @ delta, delta])
                    if layer:
                        delta = (delta @ weights[:-1].T) * _slope(activations[layer])
                    velocity[layer] = learning_rate * gradient + MOMENTUM * velocity[layer]
                    weights -= velocity[layer]
        return self

    def predict(self, sample):
        """Return the predicted class index as a float, or an array of them for a batch."""
        array = np.asarray(sample, dtype=np.float64)
        single = array.ndim == 1
        batch = self._check_inputs(np.atleast_2d(array))
        outputs = self._layers((batch - self._input_mean) * self._input_scale)[-1]
        classes = outputs.argmax(axis=1).astype(np.float64)
        return float(classes[0]) if single else classes

    def save(self, path):
        """Write the model to ``path`` as JSON."""
        state = {
            "layer_sizes": list(self.layer_sizes),
            "weights": [weights.tolist() for weights in self._weights],
            "input_mean": self._input_mean.tolist(),
            "input_scale": self._input_scale.tolist(),
        }
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(state, handle)

    @classmethod
    def load(cls, path):
        """Read a model written by :meth:`save`; raises ``ValueError`` if malformed."""
        with open(path, encoding="utf-8") as handle:
            state = json.load(handle)
        try:
            model = cls(state["layer_sizes"])
            weights = [np.asarray(layer, dtype=np.float64) for layer in state["weights"]]
            mean = np.asarray(state["input_mean"], dtype=np.float64)
            scale = np.asarray(state["input_scale"], dtype=np.float64)
        except (KeyError, TypeError) as error:
            raise ValueError(f"malformed classifier file {path}") from error
        expected = [weights_.shape for weights_ in model._weights]
        if [layer.shape for layer in weights] != expected:
            raise ValueError(f"weights in {path} do not match the layer sizes")
        if mean.shape != (model.layer_sizes[0],) or scale.shape != mean.shape:
            raise ValueError(f"input scaling in {path} does not match the layer sizes")
        model._weights = weights
        model._input_mean, model._input_scale = mean, scale
        return model


def read_dataset(path, var_count=FEATURE_COUNT):
    """Read a feature file of ``label,value,value,...`` lines.

    Returns the ``(samples, var_count)`` float32 data and the character code
    of each line's first character.  Reading stops at the first line holding
    no comma.  Raises ``ValueError`` for a line with too few or bad values.
    """
    rows, responses = [], []
    with open(path, encoding="utf-8") as handle:
        for number, line in enumerate(handle, start=1):
            if "," not in line:
                break
            fields = line.rstrip("\r\n").split(",")[1:]
            if len(fields) < var_count:
                raise ValueError(f"line {number} of {path} holds fewer than {var_count} values")
            try:
                rows.append([float(field) for field in fields[:var_count]])
            except ValueError as error:
                raise ValueError(f"bad value on line {number} of {path}") from error
            responses.append(ord(line[0]))
    data = np.array(rows, dtype=np.float32).reshape(-1, var_count)
    return data, np.array(responses, dtype=np.int64)


def label_to_class(label):
    """Return the class index of a gesture character: ``0``-``9`` then ``a``-``z``."""
    if len(label) != 1:
        raise ValueError("a class label is a single character")
    code = ord(label)
    class_id = code - LETTER_BASE + 10 if code >= LETTER_BASE else code - LABEL_BASE
    if not 0 <= class_id < CLASS_COUNT:
        raise ValueError(f"{label!r} is not a gesture class")
    return class_id


def class_to_char(value):
    """Return the gesture character of a predicted class index."""
    if value >= 10:
        return chr(int(value + LETTER_BASE - 10))
    return chr(int(value + LABEL_BASE))


def evaluate(model, data, responses):
    """Return ``(correct, percentage)`` of ``model``'s predictions on ``data``.

    A prediction is correct when it equals the response minus the code of
    ``'0'`` or the response itself.
    """
    codes = np.asarray(responses, dtype=np.int64).reshape(-1)
    if codes.size == 0:
        raise ValueError("no samples to evaluate")
    predictions = model.predict(np.asarray(data).reshape(codes.size, -1))
    correct = sum(
        1
        for prediction, code in zip(predictions, codes)
        if int(prediction) == code - LABEL_BASE or int(prediction) == code
    )
    return correct, correct * 100.0 / codes.size


def _one_hot(responses):
    classes = np.asarray(responses, dtype=np.int64) - LABEL_BASE
    if np.any((classes < 0) | (classes >= CLASS_COUNT)):
        raise ValueError("a response lies outside the gesture classes")
    targets = np.zeros((classes.size, CLASS_COUNT), dtype=np.float64)
    targets[np.arange(classes.size), classes] = 1.0
    return targets


def build_classifier(data_path, save_path=None, load_path=None):
    """Train (or load) a classifier on ``data_path`` and evaluate it there.

    Returns ``(model, correct, percentage)``.  With ``save_path`` the model
    is written there afterwards.
    """
    data, responses = read_dataset(data_path, FEATURE_COUNT)
    if load_path:
        model = MLP.load(load_path)
    else:
        model = MLP((data.shape[1], *HIDDEN_LAYERS, CLASS_COUNT))
        model.train(data, _one_hot(responses), DEFAULT_MAX_ITER, DEFAULT_LEARNING_RATE)
    correct, rate = evaluate(model, data, responses)
    if save_path:
        model.save(save_path)
    return model, correct, rate


def extract_features(directory, output=DEFAULT_DATA_FILE, seed=None):
    """Write one feature line per ``.png`` gesture image of ``directory``.

    Images are taken in shuffled order.  Each line holds the class character
    (class index plus ``'0'``) and descriptors 2 to 20 of the image's largest
    contour.  Returns the number of lines written.
    """
    paths = list_png_files(directory)
    random.Random(seed).shuffle(paths)
    lines = []
    for path in paths:
        class_id = label_to_class(class_label(path))
        contour = largest_contour(read_gesture_image(path), CONTOUR_THRESHOLD, ERODE_ITERATIONS)
        descriptors = elliptic_fourier_descriptors(contour)
        fields = [chr(class_id + LABEL_BASE)] + [f"{value:f}" for value in descriptors[1:]]
        lines.append(",".join(fields) + "\n")
    with open(output, "w", encoding="utf-8", newline="") as handle:
        handle.writelines(lines)
    return len(lines)


def main(argv=None):
    """Extract gesture features, or train, save, load and evaluate a classifier."""
    parser = argparse.ArgumentParser(
        prog="handvision-gesture",
        description="Extract gesture features or train and test a gesture classifier.",
        allow_abbrev=False,
    )
    parser.add_argument("-extra", metavar="DIRECTORY", help="extract features of the images")
    parser.add_argument("-output", default=DEFAULT_DATA_FILE, help="feature file to write")
    parser.add_argument("-seed", type=int, default=None, help="seed for the image order")
    parser.add_argument("-data", default="", help="feature file to train and test on")
    parser.add_argument("-save", default="", help="file to save the classifier to")
    parser.add_argument("-load", default="", help="file to load the classifier from")
    args = parser.parse_args(argv)

    if args.extra:
        try:
            count = extract_features(args.extra, args.output, args.seed)
        except (OSError, ValueError) as error:
            print(f"could not extract features: {error}", file=sys.stderr)
            return 1
        print(f"Extracted features of {count} images to {args.output}")
        return 0

    if not args.data:
        print("no feature file given", file=sys.stderr)
        return 1
    try:
        _, correct, rate = build_classifier(args.data, args.save or None, args.load or None)
    except (OSError, ValueError) as error:
        print(f"could not build the classifier: {error}", file=sys.stderr)
        return 1
    print(f"correct predictions {correct}")
    if not args.save:
        print(f"Test Recognition rate: training set = {rate:.1f}%")
    return 0