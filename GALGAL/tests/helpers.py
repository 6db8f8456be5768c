"""Catalog line builders shared by the test modules."""

from __future__ import annotations


def make_line(
    obj_id,
    x=0.0,
    y=0.0,
    flux=5.0,
    flux_err=0.1,
    shear=(0.0, 0.0, 0.0, 0.0),
    flexion_f=(0.0, 0.0, 0.0, 0.0),
    flexion_g=(0.0, 0.0, 0.0, 0.0),
) -> str:
    """Build a 25-column catalog line; shape tuples are (c1, c1_err, c2, c2_err)."""
    cols = ["0"] * 25
    cols[0] = str(obj_id)
    cols[1] = str(x)
    cols[2] = str(y)
    cols[3] = str(flux)
    cols[4] = str(flux_err)
    cols[5:13] = ["-99"] * 8
    cols[13:17] = [str(v) for v in shear]
    cols[17:21] = [str(v) for v in flexion_f]
    cols[21:25] = [str(v) for v in flexion_g]
    return " ".join(cols)
