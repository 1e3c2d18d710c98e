"""Building blocks of an edit session: buffer, editor, diff, store."""
