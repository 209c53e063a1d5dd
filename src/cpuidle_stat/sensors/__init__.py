"""Readers for kernel-exposed cpuidle counters."""
