"""
Text-mining heuristics used to build archived job statistics.

Pure functions only; nothing here touches the network or storage.
"""
