"""SEG-Y IO package - header reading helpers and the memory-mapped reader."""
