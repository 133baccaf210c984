"""Weekly multiple-choice quiz engine with a Rich command line front end."""
