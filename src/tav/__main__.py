from tav.cli import main

main()
