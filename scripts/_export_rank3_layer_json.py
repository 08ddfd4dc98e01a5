#!/usr/bin/env python3
"""
Train a small rank-3 tensor layer and export it to a JSON checkpoint.

The target is a bilinear function of the two input halves, which the
quadratic weights can represent exactly. The resulting file can be diffed
or reloaded with `deltaweights.infrastructure.load_json`.

Run after ``pip install -e .`` from the repository root.
"""

from pathlib import Path

import numpy as np

from deltaweights.infrastructure import (
    AdaGrad,
    FullRank3TensorLayer,
    Linear,
    load_json,
    save_json,
)


def main() -> None:
    rng = np.random.default_rng(0)

    # ----------------------------
    # Data: y = a' T b with a fixed T
    # ----------------------------
    target = np.array([[1.0, -0.5], [0.25, 2.0]])
    xs = rng.uniform(-1.0, 1.0, size=(64, 4))
    ys = np.array([[x[:2] @ target @ x[2:]] for x in xs])

    # ----------------------------
    # Build and train
    # ----------------------------
    builder = AdaGrad(rate=0.1, l2decay=0.0, seed=0)
    layer = FullRank3TensorLayer(2, 2, 1, Linear()).initialize(builder)

    for epoch in range(200):
        total = 0.0
        for x, y in zip(xs, ys):
            out = layer.apply(x)
            diff = out - y
            total += float(diff @ diff)
            layer.backward(x, out, 2.0 * diff)
        layer.update(len(xs))
        if epoch % 50 == 0:
            print(f"epoch {epoch:3d}  mse {total / len(xs):.6f}")

    print("Learned quadratic weight:")
    print(layer.quadratic[0].value)

    # ----------------------------
    # Save and reload
    # ----------------------------
    out_path = Path("rank3_layer.json")
    save_json(out_path, layer, builder)
    restored, _ = load_json(out_path)
    assert np.array_equal(restored.apply(xs[0]), layer.apply(xs[0]))

    print(f"\nSaved JSON checkpoint to: {out_path.resolve()}")


if __name__ == "__main__":
    main()
