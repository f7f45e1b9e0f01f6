"""Terminal presentation: step headings, prompts and the progress spinner."""
