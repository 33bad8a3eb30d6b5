def sort_entries(entries):
    return sorted(entries, key=lambda entry: entry.size)


def largest_entries(entries, limit):
    """The ``limit`` biggest entries, smallest first."""
    if limit <= 0:
        return []
    return sort_entries(entries)[-limit:]
