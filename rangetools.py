# Half-open integer ranges used for clipping sprites against a canvas.
# Python's range() already is a half-open [start, stop) pair; these helpers
# shift and intersect them without ever producing negative lengths.


def add(r: range, d: int) -> range:
    return range(r.start + d, r.stop + d)


def intersect(a: range, b: range) -> range:
    start = max(a.start, b.start)
    return range(start, max(start, min(a.stop, b.stop)))


def find_spans(buf) -> list[range]:
    """Find the maximal runs of true values in a sequence of booleans."""
    spans = []

    i = 0
    n = len(buf)
    while i < n:
        while i < n and not buf[i]:
            i += 1
        if i == n:
            break
        span_start = i
        while i < n and buf[i]:
            i += 1
        spans.append(range(span_start, i))

    return spans
