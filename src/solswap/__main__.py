from solswap.main import main

main()
