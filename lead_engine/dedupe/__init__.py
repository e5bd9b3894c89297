# Duplicate detection module
from .resolver import DuplicateResolver, detect_duplicates, merge_group
from .similarity import calculate_similarity, fuzzy_match, levenshtein_distance
